import os
import json
import shutil
from player_agent.config.constants import BASELINE_FPS
from player_agent.utils.logger import log

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _app_home():
    return os.getenv("PLAYER_AGENT_HOME", os.path.join(os.path.expanduser("~"), ".player_agent"))


class ConfigManager:
    APP_NAME = "PlayerAgent"

    def __init__(self, config_dir=None):
        self.config_dir = config_dir or _app_home()
        self.config_file = os.path.join(self.config_dir, "config.json")
        self.default_config = {
            "db_path": os.path.join(self.config_dir, "player_agent.db"),
            "log_level": "INFO",
            "baseline_fps": BASELINE_FPS,
            "first_run": True,
        }
        self.config = self.load_config()

    def load_config(self):
        try:
            os.makedirs(self.config_dir, exist_ok=True)
        except OSError as e:
            log.error(f"Failed to create config dir {self.config_dir}: {e}. Using defaults.")
            return self.default_config.copy()

        if not os.path.exists(self.config_file):
            self.save_config(self.default_config)
            return self.default_config.copy()

        try:
            with open(self.config_file, 'r') as f:
                return json.load(f)
        except Exception as e:
            log.error(f"Failed to load config: {e}. Loading defaults.")
            return self.default_config.copy()

    def save_config(self, config=None):
        if config is None:
            config = self.config

        # Rollback mechanism: Backup existing config
        if os.path.exists(self.config_file):
            try:
                shutil.copy2(self.config_file, self.config_file + ".bak")
            except Exception as e:
                log.warning(f"Failed to backup config: {e}")

        try:
            with open(self.config_file, 'w') as f:
                json.dump(config, f, indent=4)
        except Exception as e:
            log.error(f"Failed to save config: {e}")

    def get(self, key, default=None):
        return self.config.get(key, default)

    def set(self, key, value):
        self.config[key] = value
        self.save_config()

    def validate_config(self):
        """Ensure config structure is valid."""
        if not isinstance(self.config, dict):
            self.config = self.default_config.copy()
            self.save_config()
            return

        changes = False

        for key, default_val in self.default_config.items():
            if key not in self.config:
                self.config[key] = default_val
                changes = True

        if not isinstance(self.config.get("db_path"), str):
            self.config["db_path"] = self.default_config["db_path"]
            changes = True

        if self.config.get("log_level") not in LOG_LEVELS:
            self.config["log_level"] = self.default_config["log_level"]
            changes = True

        baseline = self.config.get("baseline_fps")
        if isinstance(baseline, bool) or not isinstance(baseline, (int, float)) or baseline <= 0:
            self.config["baseline_fps"] = BASELINE_FPS
            changes = True

        if changes:
            log.info("Config repaired with default values.")
            self.save_config()


config_manager = ConfigManager()
config_manager.validate_config()
log.setLevel(config_manager.get("log_level"))
