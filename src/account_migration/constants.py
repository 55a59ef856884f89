"""Constants for the account migration tool.

Named constants for wire endpoints, file layouts and option limits, kept in
one place so the codec, validator and drivers agree on them.
"""

# -----------------------------------------------------------------------------
# Identity service endpoints
# -----------------------------------------------------------------------------

DEFAULT_API_ORIGIN: str = "https://www.googleapis.com"

DOWNLOAD_ACCOUNT_ENDPOINT: str = "identitytoolkit/v3/relyingparty/downloadAccount"
UPLOAD_ACCOUNT_ENDPOINT: str = "identitytoolkit/v3/relyingparty/uploadAccount"


# -----------------------------------------------------------------------------
# Paging and batching limits
# -----------------------------------------------------------------------------

# Accounts requested per downloadAccount page
DEFAULT_EXPORT_BATCH_SIZE: int = 1000

# Accounts sent per uploadAccount request (service limit is 1000)
DEFAULT_IMPORT_BATCH_SIZE: int = 1000
MAX_IMPORT_BATCH_SIZE: int = 1000

# Retries of a single page after a timeout before the export gives up
MAX_TIMEOUT_RETRIES: int = 5


# -----------------------------------------------------------------------------
# File formats
# -----------------------------------------------------------------------------

FORMAT_CSV: str = "csv"
FORMAT_JSON: str = "json"

SUPPORTED_FORMATS: frozenset[str] = frozenset({FORMAT_CSV, FORMAT_JSON})

EXTENSION_FORMATS: dict[str, str] = {
    ".csv": FORMAT_CSV,
    ".json": FORMAT_JSON,
}


# -----------------------------------------------------------------------------
# Row layout
# -----------------------------------------------------------------------------

ROW_WIDTH: int = 27

# Core identity fields
ROW_LOCAL_ID: int = 0
ROW_EMAIL: int = 1
ROW_EMAIL_VERIFIED: int = 2
ROW_PASSWORD_HASH: int = 3
ROW_SALT: int = 4
ROW_DISPLAY_NAME: int = 5
ROW_PHOTO_URL: int = 6

# Trailing fields
ROW_CREATED_AT: int = 23
ROW_LAST_LOGIN_AT: int = 24
ROW_PHONE_NUMBER: int = 25
ROW_DISABLED: int = 26

PROVIDER_SLOT_COUNT: int = 4

# Each known provider owns PROVIDER_SLOT_COUNT contiguous fields at this offset.
# Insertion order is the slot order used when decoding rows.
PROVIDER_SLOT_OFFSETS: dict[str, int] = {
    "google.com": 7,
    "facebook.com": 11,
    "twitter.com": 15,
    "github.com": 19,
}

KNOWN_PROVIDER_IDS: frozenset[str] = frozenset(PROVIDER_SLOT_OFFSETS)


# -----------------------------------------------------------------------------
# Password hash options
# -----------------------------------------------------------------------------

HMAC_ALGORITHMS: frozenset[str] = frozenset(
    {"HMAC_SHA512", "HMAC_SHA256", "HMAC_SHA1", "HMAC_MD5"}
)
DIGEST_ALGORITHMS: frozenset[str] = frozenset({"MD5", "SHA1", "SHA256", "SHA512"})
PBKDF_ALGORITHMS: frozenset[str] = frozenset({"PBKDF_SHA1", "PBKDF2_SHA256"})

SUPPORTED_HASH_ALGORITHMS: frozenset[str] = (
    HMAC_ALGORITHMS
    | DIGEST_ALGORITHMS
    | PBKDF_ALGORITHMS
    | frozenset({"SCRYPT", "BCRYPT", "STANDARD_SCRYPT"})
)

# Inclusive (min, max) rounds per algorithm family
DIGEST_ROUNDS_RANGE: dict[str, tuple[int, int]] = {
    "MD5": (0, 8192),
    "SHA1": (1, 8192),
    "SHA256": (1, 8192),
    "SHA512": (1, 8192),
}
PBKDF_ROUNDS_RANGE: tuple[int, int] = (0, 120000)
SCRYPT_ROUNDS_RANGE: tuple[int, int] = (1, 8)
SCRYPT_MEM_COST_RANGE: tuple[int, int] = (1, 14)

HASH_INPUT_ORDERS: dict[str, str] = {
    "SALT_FIRST": "SALT_AND_PASSWORD",
    "PASSWORD_FIRST": "PASSWORD_AND_SALT",
}
