"""
Adapter implementations for Bump Radar.

Adapters are concrete implementations of the port interfaces.
They handle the specifics of upstream feeds, caching, reference data
and scoring signals.
"""
