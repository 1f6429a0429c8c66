"""Project-wide constants (public gateway, API paths, upload framing)."""

PUBLIC_GATEWAY_URL: str = "https://ipfs.io/"

IPFS_DIR_NAME: str = ".ipfs"
API_FILE_NAME: str = "api"

API_ADD: str = "api/v0/add"
API_GET: str = "api/v0/get"
API_RESOLVE: str = "api/v0/resolve"
API_LS: str = "api/v0/ls"
API_OBJECT_PATCH_ADD_LINK: str = "api/v0/object/patch/add-link"
API_NAME_PUBLISH: str = "api/v0/name/publish"
API_KEY_LIST: str = "api/v0/key/list"

ADD_TIMEOUT_SECONDS: float = 600.0

MULTIPART_BOUNDARY_PREFIX: str = "-" * 24
MULTIPART_BOUNDARY_LENGTH: int = 18
DEFAULT_MULTIPART_HOST: str = "localhost:5001"
