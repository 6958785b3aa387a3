"""
Shared store key layout.

    queue:<tier>      list of waiting participant ids
    pair:<id>         partner id (TTL)
    recent:<id>       list of recent partner ids (TTL)
    user:vip:<id>     cached VIP flag (TTL = remaining subscription)

Every key can be prefixed with a namespace so several bots keep separate pools.
"""
from typing import Optional, Union


def namespaced(namespace: Optional[str], key: str) -> str:
    if namespace:
        return f"{namespace}:{key}"
    return key


def decode(value: Union[str, bytes, None]) -> Optional[str]:
    """Redis clients created with decode_responses=False return bytes."""
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
