"""Process-wide mutable state.

Only two pieces of state are shared across components: the device
registry (written by the session authenticator) and the global call
cooldown (written by the call detector).  Everything else reads them.
"""

from pyechoconnect.state.cooldown import GlobalCooldown
from pyechoconnect.state.registry import DeviceRegistry

__all__ = ["DeviceRegistry", "GlobalCooldown"]
