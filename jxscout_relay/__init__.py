"""
jxscout relay for mitmproxy.

Load as a script:
    mitmdump -s jxscout_relay/__init__.py
"""

from jxscout_relay.addon import JxscoutAddon

addons = [JxscoutAddon()]

__all__ = ["JxscoutAddon", "addons"]
