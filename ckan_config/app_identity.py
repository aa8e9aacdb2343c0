"""Application identity constants shared across modules."""

APP_LOG_NAMESPACE = "ckan_config"
APP_NAME = "CKAN"

CONFIG_FILE_NAME = "config.json"
DOWNLOADS_DIR_NAME = "downloads"

CONFIG_FILE_ENV = "CKAN_CONFIG_FILE"
LOG_LEVEL_ENV = "CKAN_LOG_LEVEL"
LOG_FORMAT_ENV = "CKAN_LOG_FORMAT"

LEGACY_REGISTRY_KEY = r"Software\CKAN"
