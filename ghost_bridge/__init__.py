"""Ghost Bridge — Control plane of a desktop UI-automation agent.

Accepts structured commands ("click", "type", "findElements", "getState"),
routes them to a state provider or an action executor, and returns typed
results.  A recording interceptor can capture every dispatched command
into a replayable artifact, and stored recipes replay parameterized
command sequences.

Layers (bottom to top):
    1. Protocol   — request/response envelopes, result union, codec
    2. Dispatch   — method router and collaborator contracts
    3. Recording  — interceptor, recipe store, recipe runner
    4. Control    — single-actor front door tying the layers together
"""

__version__ = "0.1.0"
__protocol_version__ = "1"
