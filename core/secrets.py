"""
API key lookup using the OS keychain, the config file and the environment.

Usage:
    from core.secrets import get_api_key, set_api_key

    # Keychain first, then ~/.reelsmith/config.json, then env var
    key = get_api_key("GEMINI_API_KEY")

    # Store key in keychain
    set_api_key("GEMINI_API_KEY", "...")
"""

import os
import logging
from typing import Dict, Optional

from core.config import ConfigManager

logger = logging.getLogger(__name__)

# Service name for keychain entries
SERVICE_NAME = "reelsmith"

# Known API key names, their descriptions and config file keys
KNOWN_KEYS = {
    "GEMINI_API_KEY": "Google Gemini API key (images, narration, music)",
}

CONFIG_KEYS = {
    "GEMINI_API_KEY": "gemini.apiKey",
}


def _get_keyring():
    """Lazy import keyring so a broken keychain backend never blocks rendering."""
    try:
        import keyring
        return keyring
    except ImportError:
        return None


def is_keyring_available() -> bool:
    return _get_keyring() is not None


def get_api_key(
    key_name: str,
    config: Optional[ConfigManager] = None,
    fallback_to_env: bool = True
) -> Optional[str]:
    """
    Get an API key from the keychain, the config file or the environment.

    Args:
        key_name: Name of the API key (e.g., "GEMINI_API_KEY")
        config: Config file to consult (default: the user config)
        fallback_to_env: If True, check environment variables last

    Returns:
        The API key value, or None if not found
    """
    keyring = _get_keyring()
    if keyring:
        try:
            value = keyring.get_password(SERVICE_NAME, key_name)
            if value:
                logger.debug(f"Retrieved {key_name} from secure keychain")
                return value
        except Exception as e:
            logger.debug(f"Keychain access failed for {key_name}: {e}")

    config_key = CONFIG_KEYS.get(key_name)
    if config_key:
        value = (config or ConfigManager()).get(config_key)
        if value:
            logger.debug(f"Retrieved {key_name} from config file")
            return value

    if fallback_to_env:
        value = os.environ.get(key_name)
        if value:
            logger.debug(f"Retrieved {key_name} from environment variable")
            return value

    return None


def set_api_key(key_name: str, value: str) -> bool:
    """
    Store an API key in the OS keychain.

    Returns:
        True if successful, False otherwise
    """
    keyring = _get_keyring()
    if not keyring:
        logger.error("keyring package not installed. Run: pip install keyring")
        return False

    try:
        keyring.set_password(SERVICE_NAME, key_name, value)
        logger.info(f"Stored {key_name} in secure keychain")
        return True
    except Exception as e:
        logger.error(f"Failed to store {key_name} in keychain: {e}")
        return False


def delete_api_key(key_name: str) -> bool:
    """
    Delete an API key from the OS keychain.

    Returns:
        True if successful, False otherwise
    """
    keyring = _get_keyring()
    if not keyring:
        logger.error("keyring package not installed. Run: pip install keyring")
        return False

    try:
        keyring.delete_password(SERVICE_NAME, key_name)
        logger.info(f"Deleted {key_name} from secure keychain")
        return True
    except keyring.errors.PasswordDeleteError:
        logger.warning(f"{key_name} not found in keychain")
        return False
    except Exception as e:
        logger.error(f"Failed to delete {key_name} from keychain: {e}")
        return False


def list_api_keys(config: Optional[ConfigManager] = None) -> Dict[str, str]:
    """
    Report where each known key is configured.

    Returns:
        Dict mapping key names to "keychain", "config", "env" or "not_set"
    """
    status = {}
    keyring = _get_keyring()
    config = config or ConfigManager()

    for key_name in KNOWN_KEYS:
        if keyring:
            try:
                if keyring.get_password(SERVICE_NAME, key_name):
                    status[key_name] = "keychain"
                    continue
            except Exception as e:
                logger.debug(f"Keychain access failed for {key_name}: {e}")

        if CONFIG_KEYS.get(key_name) and config.get(CONFIG_KEYS[key_name]):
            status[key_name] = "config"
        elif os.environ.get(key_name):
            status[key_name] = "env"
        else:
            status[key_name] = "not_set"

    return status
