# -*- coding: utf-8 -*-

import logging
import os
from datetime import datetime

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class GameLogger:
    """One log file per game; the handler is attached to the `cube` logger tree."""

    def __init__(self, logs_dir="./logs", logger_name="cube"):
        self.logs_dir = logs_dir
        self.logger_name = logger_name
        self.current_game_id = None
        self.log_path = None
        self.handler = None

    def start_new_game(self, game_id=None):
        logger = logging.getLogger(self.logger_name)
        self.close()

        os.makedirs(self.logs_dir, exist_ok=True)
        self.current_game_id = game_id or datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        self.log_path = os.path.join(self.logs_dir, f"gamelog_{self.current_game_id}.log")

        self.handler = logging.FileHandler(self.log_path, encoding="utf-8")
        self.handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.setLevel(logging.DEBUG)
        logger.addHandler(self.handler)

        logger.info(f"=== Game {self.current_game_id} Started ===")
        return self.current_game_id

    def close(self):
        if self.handler:
            logging.getLogger(self.logger_name).removeHandler(self.handler)
            self.handler.close()
            self.handler = None
