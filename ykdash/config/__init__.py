from ykdash.config.config import Config, apply_saved_config, save_current_config


__all__ = ["Config", "apply_saved_config", "save_current_config"]
