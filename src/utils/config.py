# runtime settings, read once from the environment
import os

# unset -> the in-process mock backend is used
API_BASE_URL = os.getenv("SILK_API_URL")
MOCK_BASE_URL = "http://mock.silk.local"
API_TIMEOUT = float(os.getenv("SILK_API_TIMEOUT", "10"))

STORE_PATH = os.getenv("SILK_STORE_PATH", "data/store.sqlite")

LOG_FILE = os.getenv("SILK_LOG_FILE")
DEBUG = bool(os.getenv("DEBUG"))

CATALOG_PAGE_SIZE = 6
PROJECTS_PAGE_SIZE = 5
ORDERS_PAGE_SIZE = 5
