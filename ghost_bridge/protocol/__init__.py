"""Wire protocol: envelopes, parameter structs, result union and codec.

Modules are imported directly (``ghost_bridge.protocol.codec`` etc.); the
package itself re-exports nothing because ``protocol.results`` depends on
``ghost_bridge.recording.models``.
"""
