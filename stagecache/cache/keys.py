"""
stagecache - Key Encoder

Maps arbitrary string keys to fixed-length hex digests. The digest doubles as
the metadata index key and the on-disk filename, so the mapping must stay
stable across sessions for persisted entries to remain addressable.
"""

import hashlib

from ..errors import ConfigurationError


class KeyEncoder:
    """Deterministic string key -> hex digest mapping."""

    def __init__(self, algorithm: str = "sha1"):
        """
        Args:
            algorithm: Any fixed-length digest name understood by hashlib

        Raises:
            ConfigurationError: If the digest is unknown or variable-length
        """
        try:
            digest_size = hashlib.new(algorithm).digest_size
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Unknown key algorithm: {algorithm}",
                details={"key_algorithm": algorithm, "error": str(e)},
            ) from e

        # shake_* report a digest size of 0 and need an explicit output length
        if not digest_size:
            raise ConfigurationError(
                f"Key algorithm must have a fixed digest length: {algorithm}",
                details={"key_algorithm": algorithm},
            )

        self.digest_size = digest_size
        self.algorithm = algorithm

    def encode(self, key: str) -> str:
        """Return the lowercase hex digest of the UTF-8 encoded key."""
        return hashlib.new(self.algorithm, key.encode("utf-8", "surrogatepass")).hexdigest()
