"""
Exports fitted scikit-learn trees as a RandomForest text dump.

scikit-learn itself is not imported here; any fitted estimator exposing
`classes_`, `n_features_in_` and either `tree_` or `estimators_` is accepted.
Install the `sklearn` extra to produce such models.

Classes:
    - SklearnForestDumper: renders one tree or a whole forest
Functions:
    - export_forest_dump: one-call shortcut
"""

from typing import List, Optional, Sequence
import numpy as np


BASE_LEARNER = "RandomTree"


def _format_number(value: float, decimals: int = 2) -> str:
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class SklearnForestDumper:
    """
    Renders fitted scikit-learn trees in the RandomForest dump layout.

    Each split line holds one condition, children are indented with "|   ", and a
    leaf line ends with " : <label> (<records>/<misclassified>)". The output can
    be parsed with ModelKind.RANDOM_FOREST.

    Class labels are written as str(class_name); labels containing spaces or dots
    do not match the RandomForest leaf pattern and their leaves are skipped by the
    parser, so pass cleaned class_names in that case. Feature names must not
    contain "(" or "|", which the parser reads as leaf and indentation markers.

    Example:
        >>> forest = RandomForestClassifier(n_estimators=5).fit(X, y)
        >>> dumper = SklearnForestDumper(feature_names=list(X.columns))
        >>> dump_text = dumper.dump(forest)
    """

    def __init__(self, feature_names: Optional[Sequence[str]] = None,
                 class_names: Optional[Sequence[str]] = None,
                 threshold_decimals: int = 4):
        """
        Args:
            feature_names: Names used in split conditions (default: model.feature_names_in_ or x0, x1, ...)
            class_names: Labels used in leaves (default: model.classes_)
            threshold_decimals: Decimal places of split thresholds
        """
        self.feature_names = list(feature_names) if feature_names is not None else None
        self.class_names = [str(c) for c in class_names] if class_names is not None else None
        self.threshold_decimals = threshold_decimals

    def _resolve_names(self, model):
        n_features = model.n_features_in_
        if self.feature_names is not None:
            feature_names = self.feature_names
        elif hasattr(model, "feature_names_in_"):
            feature_names = [str(f) for f in model.feature_names_in_]
        else:
            feature_names = [f"x{i}" for i in range(n_features)]

        if len(feature_names) != n_features:
            raise ValueError(f"Expected {n_features} feature names, got {len(feature_names)}")

        class_names = self.class_names if self.class_names is not None else [str(c) for c in model.classes_]
        if len(class_names) != len(model.classes_):
            raise ValueError(f"Expected {len(model.classes_)} class names, got {len(class_names)}")

        return feature_names, class_names

    def tree_lines(self, tree_model, feature_names: List[str], class_names: List[str]) -> List[str]:
        """
        Lines of a single fitted DecisionTreeClassifier.
        """
        tree = tree_model.tree_
        lines: List[str] = []

        def leaf_summary(node_id: int) -> str:
            # tree_.value holds counts or fractions depending on the sklearn version
            distribution = np.asarray(tree.value[node_id][0], dtype=float)
            total = distribution.sum()
            if total > 0:
                distribution = distribution / total * tree.weighted_n_node_samples[node_id]
            predicted = int(np.argmax(distribution))
            records = float(distribution.sum())
            misclassified = max(0.0, records - float(distribution[predicted]))
            return f"{class_names[predicted]} ({_format_number(records)}/{_format_number(misclassified)})"

        def is_leaf(node_id: int) -> bool:
            return tree.children_left[node_id] == tree.children_right[node_id]

        def traverse(node_id: int, depth: int):
            feature_name = feature_names[tree.feature[node_id]]
            threshold = _format_number(tree.threshold[node_id], self.threshold_decimals)
            indent = "|   " * depth

            branches = [
                (tree.children_left[node_id], f"{feature_name} <= {threshold}"),
                (tree.children_right[node_id], f"{feature_name} > {threshold}"),
            ]
            for child_id, condition in branches:
                if is_leaf(child_id):
                    lines.append(f"{indent}{condition} : {leaf_summary(child_id)}")
                else:
                    lines.append(f"{indent}{condition}")
                    traverse(child_id, depth + 1)

        if is_leaf(0):
            lines.append(f": {leaf_summary(0)}")
        else:
            traverse(0, 0)

        return lines

    def dump(self, model) -> str:
        """
        Dump text of a fitted RandomForestClassifier (all trees) or DecisionTreeClassifier.

        Raises:
            ValueError: When the model is not fitted
        """
        if not hasattr(model, "classes_"):
            raise ValueError("Model must be fitted before it can be dumped")

        feature_names, class_names = self._resolve_names(model)

        if hasattr(model, "estimators_"):
            trees = list(model.estimators_)
        else:
            trees = [model]

        out = [
            "RandomForest",
            "",
            f"Bagging with {len(trees)} iterations and base learner",
            "",
            f"{type(model).__module__}.{type(model).__name__}",
            "",
            "All the base classifiers: ",
            "",
        ]

        for tree_model in trees:
            out.append(BASE_LEARNER)
            out.append("=" * len(BASE_LEARNER))
            out.append("")
            out.extend(self.tree_lines(tree_model, feature_names, class_names))
            out.append("")
            out.append(f"Size of the tree : {tree_model.tree_.node_count}")
            out.append("")

        return "\n".join(out) + "\n"


def export_forest_dump(model, feature_names: Optional[Sequence[str]] = None,
                       class_names: Optional[Sequence[str]] = None) -> str:
    """Shortcut for SklearnForestDumper(feature_names, class_names).dump(model)."""
    return SklearnForestDumper(feature_names=feature_names, class_names=class_names).dump(model)
