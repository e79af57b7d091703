"""OSC Relay Bridge

Orquestador que une transporte local, filtro y Relay Link con prevención
de bucles.
"""

from modules.oscrelay_bridge.orchestrator import BridgeOrchestrator, STATUS_PATH

__all__ = [
    "BridgeOrchestrator",
    "STATUS_PATH",
]
