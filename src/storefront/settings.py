"""Engine settings read from the `[custom]` table of domain.toml.

An environment variable of the same name overrides the file, so
deployments can flip a setting without shipping a new config.
"""

import os

from protean.utils.globals import current_domain

DEFAULTS = {
    "CART_MERGE_ENFORCE_STOCK": False,
    "CART_MUTATION_RETRIES": 2,
}

_TRUTHY = {"1", "true", "yes", "on"}


def setting(name):
    default = DEFAULTS.get(name)
    raw = os.environ.get(name)
    if raw is None:
        custom = current_domain.config.get("custom", {})
        raw = custom.get(name, default)

    if isinstance(default, bool):
        return raw if isinstance(raw, bool) else str(raw).strip().lower() in _TRUTHY
    if isinstance(default, int):
        return int(raw)
    return raw


def stock_limit_enforced() -> bool:
    return setting("CART_MERGE_ENFORCE_STOCK")


def mutation_retries() -> int:
    return max(0, setting("CART_MUTATION_RETRIES"))
