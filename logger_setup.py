# logger_setup.py

import logging
import os
import json

LOGGER_NAME = "flame_sim"
LOG_FILE_NAME = "flame.log"


def _replace_handlers(logger: logging.Logger, handlers):
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)


def setup_logging(config_path='config.json'):
    """
    Routes the "flame_sim" logger to the console and to runs/<run_id>/flame.log.

    Only the application logger is configured, so pygame and Numba output
    stays out of the run log. Calling this again swaps in fresh handlers.

    Data Contract:
    - Inputs: config_path (str) - JSON file with 'run_id' and a 'logging'
      section holding 'level' and 'format'.
    - Outputs: The configured logging.Logger.
    - Side Effects: Creates the run directory and opens the log file.
    """
    with open(config_path, 'r') as f:
        config = json.load(f)

    run_id = config['run_id']
    log_config = config['logging']

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_config['level'])
    logger.propagate = False

    log_dir = os.path.join('runs', run_id)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, LOG_FILE_NAME)

    formatter = logging.Formatter(log_config['format'])
    handlers = [logging.FileHandler(log_file), logging.StreamHandler()]
    for handler in handlers:
        handler.setFormatter(formatter)
    _replace_handlers(logger, handlers)

    logger.info(f"Logging initialized. Run ID: {run_id}. Log file: {log_file}")
    return logger
