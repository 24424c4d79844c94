from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

log = getLogger(__name__)


def verify_digital_signature(path: Path, signature: str | None, *, required: bool) -> bool:
    if not required:
        return True
    if not signature or not signature.strip():
        log.warning("Digital signature required but missing for %s", path.name)
        return False
    # No key infrastructure exists yet; a present signature is accepted as-is.
    log.warning("Digital signature present for %s but not cryptographically verified", path.name)
    return True
