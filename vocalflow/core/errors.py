"""Exceptions raised before a practice session can run."""


class SessionSetupError(RuntimeError):
    """A practice session could not be started.

    Raised for contract violations detected at session start (empty melody,
    bad capture parameters) and for failures acquiring the audio input.
    """
