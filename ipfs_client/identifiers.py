"""Content identifiers (CIDs) and IPFS/IPNS paths.

Everything here is pure: parsing and validation happen before any request
is built, so malformed input never reaches the network.
"""

import base64
import binascii
import io
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple, Union

import base58
import varint

from common.logging_config import get_logger
from ipfs_client.exceptions import HashError, IpfsPathParseError

logger = get_logger(__name__)

Prefix = str

CODECS: Dict[str, int] = {
    "raw": 0x55,
    "dag-pb": 0x70,
    "dag-cbor": 0x71,
    "libp2p-key": 0x72,
    "dag-json": 0x0129,
}

# name -> (multihash code, digest length); None means any length
HASH_FUNCTIONS: Dict[str, Tuple[int, Union[int, None]]] = {
    "identity": (0x00, None),
    "sha2-256": (0x12, 32),
    "sha2-512": (0x13, 64),
    "sha3-256": (0x16, 32),
    "blake2b-256": (0xB220, 32),
}

SHA2_256_DIGEST_LENGTH = HASH_FUNCTIONS["sha2-256"][1]
MAX_IDENTITY_DIGEST_LENGTH = 127

_CODEC_NAMES = {code: name for name, code in CODECS.items()}
_HASH_NAMES = {code: name for name, (code, _) in HASH_FUNCTIONS.items()}


@dataclass(frozen=True)
class ContentHash:
    """
    A self-describing content identifier: version, codec and multihash.

    Construction always validates, so an instance is known to be a
    well-formed CID. Version 0 CIDs are dag-pb over sha2-256 and render as
    base58btc ("Qm..."); version 1 CIDs render as base32 multibase ("b...").
    """
    version: int
    codec: str
    hash_function: str
    digest: bytes

    def __post_init__(self):
        if self.version not in (0, 1):
            raise HashError(f"Unsupported CID version: {self.version}")
        if self.codec not in CODECS:
            raise HashError(f"Unknown codec: {self.codec}")
        if self.hash_function not in HASH_FUNCTIONS:
            raise HashError(f"Unknown hash function: {self.hash_function}")

        expected_length = HASH_FUNCTIONS[self.hash_function][1]
        if expected_length is None:
            if len(self.digest) > MAX_IDENTITY_DIGEST_LENGTH:
                raise HashError(f"Identity digest too long: {len(self.digest)} bytes")
        elif len(self.digest) != expected_length:
            raise HashError(
                f"Digest length {len(self.digest)} does not match {self.hash_function} "
                f"(expected {expected_length})"
            )

        if self.version == 0 and (self.codec != "dag-pb" or self.hash_function != "sha2-256"):
            raise HashError("CIDv0 must be dag-pb with a sha2-256 digest")

    @property
    def multihash(self) -> bytes:
        code = HASH_FUNCTIONS[self.hash_function][0]
        return varint.encode(code) + varint.encode(len(self.digest)) + self.digest

    @property
    def hex_digest(self) -> str:
        return self.digest.hex()

    def to_bytes(self) -> bytes:
        """Binary CID form."""
        if self.version == 0:
            return self.multihash
        return varint.encode(self.version) + varint.encode(CODECS[self.codec]) + self.multihash

    def __str__(self) -> str:
        if self.version == 0:
            return base58.b58encode(self.multihash).decode("ascii")
        encoded = base64.b32encode(self.to_bytes()).decode("ascii")
        return "b" + encoded.lower().rstrip("=")

    @classmethod
    def from_bytes(cls, data: bytes) -> "ContentHash":
        """
        Parse a binary CID.

        Args:
            data: CIDv0 multihash bytes or CIDv1 bytes

        Returns:
            Validated ContentHash

        Raises:
            HashError: If the bytes are not a well-formed CID
        """
        if len(data) == 34 and data[0] == 0x12 and data[1] == 0x20:
            return cls(0, "dag-pb", "sha2-256", bytes(data[2:]))

        stream = io.BytesIO(data)
        try:
            version = varint.decode_stream(stream)
            codec_code = varint.decode_stream(stream)
            hash_code = varint.decode_stream(stream)
            length = varint.decode_stream(stream)
        except EOFError as e:
            raise HashError("Truncated CID") from e

        if version != 1:
            raise HashError(f"Unsupported CID version: {version}")
        if codec_code not in _CODEC_NAMES:
            raise HashError(f"Unknown codec code: {codec_code:#x}")
        if hash_code not in _HASH_NAMES:
            raise HashError(f"Unknown multihash code: {hash_code:#x}")

        digest = stream.read()
        if len(digest) != length:
            raise HashError(f"Multihash declares {length} bytes but carries {len(digest)}")

        return cls(version, _CODEC_NAMES[codec_code], _HASH_NAMES[hash_code], digest)

    @classmethod
    def from_string(cls, value: str) -> "ContentHash":
        """
        Parse the textual form of a CID.

        Accepts CIDv0 ("Qm...", base58btc) and CIDv1 in base32 ("b...") or
        base58btc ("z...") multibase.

        Raises:
            HashError: If the string is not a well-formed CID
        """
        if not isinstance(value, str) or not value:
            raise HashError("Empty content hash")

        try:
            if len(value) == 46 and value.startswith("Qm"):
                data = base58.b58decode(value)
            elif value[0] == "b":
                body = value[1:].upper()
                data = base64.b32decode(body + "=" * (-len(body) % 8))
            elif value[0] == "z":
                data = base58.b58decode(value[1:])
            else:
                raise HashError(f"Unsupported CID encoding: {value!r}")
        except (ValueError, binascii.Error) as e:
            raise HashError(f"Invalid CID string: {value!r}") from e

        return cls.from_bytes(data)


def parse_hash_to_identifier(hex_digest: str) -> ContentHash:
    """
    Build a raw-codec CIDv1 from a hex encoded sha2-256 digest.

    Args:
        hex_digest: 64 hexadecimal characters

    Returns:
        ContentHash whose hex_digest equals the (lower-cased) input

    Raises:
        HashError: If the input is not hex or not exactly 32 bytes long
    """
    try:
        digest = binascii.unhexlify(hex_digest)
    except (binascii.Error, ValueError, TypeError) as e:
        raise HashError(f"Invalid hex digest: {hex_digest!r}") from e

    if len(digest) != SHA2_256_DIGEST_LENGTH:
        raise HashError(
            f"Digest must be {SHA2_256_DIGEST_LENGTH} bytes, got {len(digest)}"
        )

    return ContentHash(1, "raw", "sha2-256", digest)


class PathType(Enum):
    """Namespaces a content path can live in."""
    IPFS = "ipfs"
    IPNS = "ipns"


_PATH_TYPES = {path_type.value: path_type for path_type in PathType}


def parse_path_type(token: str) -> PathType:
    """
    Map a namespace token ("ipfs", "/ipns/", ...) to its PathType.

    Raises:
        IpfsPathParseError: If the token is not a known namespace
    """
    if not isinstance(token, str):
        raise IpfsPathParseError(f"Invalid path type: {token!r}")
    path_type = _PATH_TYPES.get(token.strip("/"))
    if path_type is None:
        raise IpfsPathParseError(f"Unknown path type: {token!r}")
    return path_type


@dataclass(frozen=True)
class IpfsPath:
    """
    A path rooted in an IPFS or IPNS namespace, e.g. /ipfs/<cid>/dir/file.

    `root` is the first segment (a CID for /ipfs/, a CID or DNS name for
    /ipns/) and `segments` the remaining sub-path.
    """
    path_type: PathType
    root: str
    segments: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.path_type, PathType):
            raise IpfsPathParseError(f"Invalid path type: {self.path_type!r}")
        for segment in (self.root,) + tuple(self.segments):
            if not segment or "/" in segment or segment in (".", ".."):
                raise IpfsPathParseError(f"Invalid path segment: {segment!r}")
        if self.path_type is PathType.IPFS:
            try:
                ContentHash.from_string(self.root)
            except HashError as e:
                raise IpfsPathParseError(f"Invalid /ipfs/ root: {self.root!r}") from e

    def __str__(self) -> str:
        return "/" + "/".join((self.path_type.value, self.root) + tuple(self.segments))

    @property
    def content_hash(self) -> ContentHash:
        """Root CID of an /ipfs/ path."""
        if self.path_type is not PathType.IPFS:
            raise IpfsPathParseError(f"{self} is not an /ipfs/ path")
        return ContentHash.from_string(self.root)

    @classmethod
    def parse(cls, prefix: Prefix, path_type: PathType) -> "IpfsPath":
        """
        Combine a path remainder with its namespace.

        Args:
            prefix: Path below the namespace, e.g. "<cid>/dir/file"
            path_type: Namespace the remainder belongs to

        Raises:
            IpfsPathParseError: If the remainder is empty or has empty segments
        """
        if not isinstance(prefix, str):
            raise IpfsPathParseError(f"Invalid path: {prefix!r}")

        remainder = prefix
        if remainder.startswith("/"):
            remainder = remainder[1:]
        if remainder.endswith("/"):
            remainder = remainder[:-1]
        if not remainder:
            raise IpfsPathParseError("Path has no segments")

        root, *segments = remainder.split("/")
        return cls(path_type, root, tuple(segments))

    @classmethod
    def from_string(cls, value: str) -> "IpfsPath":
        """
        Parse a full path such as "/ipfs/<cid>/a/b" or "/ipns/example.com".

        Raises:
            IpfsPathParseError: If the namespace or any segment is invalid
        """
        if not isinstance(value, str) or not value.startswith("/"):
            raise IpfsPathParseError(f"Path must start with '/': {value!r}")
        token, _, remainder = value[1:].partition("/")
        return cls.parse(remainder, parse_path_type(token))


def parse_ipfs_path(prefix: Prefix, path_type: Union[PathType, str]) -> IpfsPath:
    """
    Build an IpfsPath from a path remainder and a namespace.

    Args:
        prefix: Path below the namespace, e.g. "<cid>/dir/file"
        path_type: PathType or its token ("ipfs", "ipns")

    Returns:
        Validated IpfsPath

    Raises:
        IpfsPathParseError: If the namespace is unknown or the path is invalid
    """
    if not isinstance(path_type, PathType):
        path_type = parse_path_type(path_type)
    path = IpfsPath.parse(prefix, path_type)
    logger.debug(f"Parsed content path {path}")
    return path
