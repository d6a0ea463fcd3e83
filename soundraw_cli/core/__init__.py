"""
Core playback coordination.

The `PlaybackCoordinator` owns the single preview session and serializes
every play/stop request through a `SerialTaskQueue`, publishing the active
sample to observers registered in an `ObserverRegistry`.
"""
