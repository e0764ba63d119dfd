import json
import os
from typing import Dict, Any

from spa_admin.core.logger import logger

CONFIG_PATH = os.environ.get("COMPANY_CONFIG_PATH", "data/company_config.json")

DEFAULT_BUSINESS_HOURS = {
    "open_time": "09:00",
    "close_time": "18:00",
    "slot_duration": 30,
}

def load_company_config(path: str = None) -> Dict[str, Any]:
    """
    Loads the business profile (name, contact, business hours, notification toggles).
    Raises FileNotFoundError if the file is missing, ValueError on bad JSON.
    """
    path = path or CONFIG_PATH
    if not os.path.exists(path):
        logger.critical(f"❌ Business profile '{path}' not found, cannot start.")
        raise FileNotFoundError(f"Configuration file not found at {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
            logger.info(f"✅ Business profile loaded for: {config.get('company_name', 'Unknown')}")
            return config
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Invalid JSON in business profile: {e}")
        raise ValueError(f"Invalid JSON in config file: {e}")

def get_business_hours(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Returns {'open_time': 'HH:MM', 'close_time': 'HH:MM', 'slot_duration': int},
    falling back to 09:00-18:00 in 30 minute slots for missing keys.
    """
    hours = dict(DEFAULT_BUSINESS_HOURS)
    hours.update(config.get("business_hours") or {})
    return hours

def get_notification_config(config: Dict[str, Any]) -> Dict[str, Any]:
    return config.get("notifications", {})
