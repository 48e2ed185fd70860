"""Application-wide constants.

Roles, statuses, and limits shared by the entities, validator, and
controllers. Runtime-tunable values live on ``AppConfig`` instead.
"""

# -- Roles --

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_MODERATOR = "moderator"
ROLES: frozenset[str] = frozenset({ROLE_USER, ROLE_ADMIN, ROLE_MODERATOR})

# -- User status --

USER_ACTIVE = "active"
USER_INACTIVE = "inactive"
USER_PENDING = "pending"
USER_BANNED = "banned"
USER_STATUSES: frozenset[str] = frozenset({USER_ACTIVE, USER_INACTIVE, USER_PENDING, USER_BANNED})

# -- Product status --

PRODUCT_ACTIVE = "active"
PRODUCT_INACTIVE = "inactive"
PRODUCT_DRAFT = "draft"
PRODUCT_STATUSES: frozenset[str] = frozenset({PRODUCT_ACTIVE, PRODUCT_INACTIVE, PRODUCT_DRAFT})

# -- Orders --

ORDER_STATUSES: tuple[str, ...] = (
    "pending",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
)

# -- Flash kinds --

FLASH_SUCCESS = "success"
FLASH_ERROR = "error"
FLASH_WARNING = "warning"
FLASH_INFO = "info"
FLASH_KINDS: frozenset[str] = frozenset({FLASH_SUCCESS, FLASH_ERROR, FLASH_WARNING, FLASH_INFO})

# -- Validation limits --

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 255
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15
PRODUCT_NAME_MIN_LENGTH = 3
PRODUCT_NAME_MAX_LENGTH = 255
PRODUCT_DESCRIPTION_MIN_LENGTH = 10

# -- Login protection --

LOGIN_MAX_ATTEMPTS = 5
LOGIN_LOCKOUT_SECONDS = 900

# -- Tokens --

TOKEN_BYTES = 32
PASSWORD_RESET_TTL_SECONDS = 3600

# -- Listing sizes --

HOME_FEATURED_LIMIT = 8
HOME_LATEST_LIMIT = 8
HOME_CATEGORY_LIMIT = 6
HOME_TOP_SELLING_LIMIT = 6
RELATED_PRODUCTS_LIMIT = 4
DASHBOARD_RECENT_LIMIT = 5
WISHLIST_PAGE_SIZE = 20
SEARCH_DEFAULT_LIMIT = 10
LOW_STOCK_THRESHOLD = 10

# -- Numeric bounds --

# SQLite INTEGER is a signed 64-bit value
MAX_ROW_ID = 2**63 - 1
# Keeps (page - 1) * limit inside MAX_ROW_ID for any allowed page size
MAX_PAGE = 1_000_000_000
