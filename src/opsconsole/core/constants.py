"""Application-wide constants."""

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_USERNAME_LENGTH = 100
MAX_ROLE_NAME_LENGTH = 100
MAX_PERMISSION_RESOURCE_LENGTH = 50
MAX_PERMISSION_ACTION_LENGTH = 50
MAX_PERMISSION_SCOPE_LENGTH = 20
MAX_PERMISSION_CATEGORY_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 500

# Token settings
ACCESS_TOKEN_JTI_LENGTH = 32

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"

# Client permission cache staleness window
DEFAULT_PERMISSIONS_CACHE_SECONDS = 300  # 5 minutes
