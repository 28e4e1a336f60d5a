"""FileID naming schemes and the strategy resolving between them."""

from services.state.asset_store.filename_parsing.base import FileIDHelper
from services.state.asset_store.filename_parsing.common import (
    EXTENSION_REWRITE_VARIANT,
    clean_filename,
    decode_extension_rewrite,
    encode_extension_rewrite,
)
from services.state.asset_store.filename_parsing.hash import (
    HASH_TRUNCATE_LENGTH,
    HashFileIDHelper,
    truncate_hash,
)
from services.state.asset_store.filename_parsing.legacy import LegacyFileIDHelper
from services.state.asset_store.filename_parsing.natural import NaturalFileIDHelper
from services.state.asset_store.filename_parsing.strategy import (
    FileIDHelperResolutionStrategy,
    build_resolution_strategy,
)

__all__ = [
    "EXTENSION_REWRITE_VARIANT",
    "FileIDHelper",
    "FileIDHelperResolutionStrategy",
    "HASH_TRUNCATE_LENGTH",
    "HashFileIDHelper",
    "LegacyFileIDHelper",
    "NaturalFileIDHelper",
    "clean_filename",
    "decode_extension_rewrite",
    "encode_extension_rewrite",
    "build_resolution_strategy",
    "truncate_hash",
]
