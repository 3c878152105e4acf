import logging
import sys
from pathlib import Path

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode='w', encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logger(run_id: str, log_level=logging.DEBUG, log_dir: str = "logs",
                 console: bool = True) -> logging.Logger:
    """
    Configures the DUAL LOG of one ForEx++ run:
    - Standard Log (INFO): forex_{run_id}.log, build summaries, skipped builds
      and the WARNING lines for skipped leaves
    - Extended Log (DEBUG): forex_{run_id}_extended.log, adds the per-class
      selection thresholds and per-dump parse counts

    Pass the returned logger to ForExExtractor so a run's messages end up in its
    own files; RuleSetStorage copies both files into the saved run.

    Args:
        run_id (str): Run identifier (ForExExtractor.run_id or any unique name).
        log_level (int): Logger level (default: logging.DEBUG).
        log_dir (str): Directory for the log files (default: "logs").
        console (bool): Also echo INFO messages to stdout.

    Returns:
        logging.Logger: Logger named forex_{run_id}.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    standard_log_file = log_path / f"forex_{run_id}.log"
    extended_log_file = log_path / f"forex_{run_id}_extended.log"

    logger = logging.getLogger(f"forex_{run_id}")
    logger.setLevel(log_level)

    # Reconfiguring the same run replaces its handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    logger.addHandler(_file_handler(standard_log_file, logging.INFO, formatter))
    logger.addHandler(_file_handler(extended_log_file, logging.DEBUG, formatter))

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.info(f"[LOGGING] Run {run_id}: standard log {standard_log_file}, extended log {extended_log_file}")
    return logger
