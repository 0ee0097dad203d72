from dotswap.config import variant_dir
from dotswap.variants.local import LocalVariantStorage


def create_variant_storage(config=None):
    """Create variant storage from config.

    Config keys:
        variant_backend: "local" (default) or "sibling"
        variant_dir: directory for the local backend (default <home>/variants)
    """
    config = config or {}
    backend = config.get("variant_backend") or "local"

    if backend == "sibling":
        from dotswap.variants.sibling import SiblingVariantStorage
        return SiblingVariantStorage()

    if backend == "local":
        return LocalVariantStorage(variant_dir(config))

    raise ValueError(f"Unknown variant backend: {backend!r}. Use 'local' or 'sibling'.")
