"""
Custom exception classes for the signaling relay.

Message handling and heartbeat sweeps never let these escape to the
surrounding process; they mark failures that the relay handles locally.
"""


class RelayError(Exception):
    """
    Base class for signaling relay errors.

    Also raised on lifecycle misuse, such as starting a relay twice.
    """

    pass


class EnvelopeError(RelayError):
    """
    Inbound frame could not be decoded into a known envelope.

    Raised when a frame is not valid JSON, is not a JSON object, or matches
    neither the register nor the signal shape.
    """

    pass


class RelayNotRunningError(RelayError):
    """
    Relay server is not running.

    Raised when an operation needs a bound listener, such as reading the
    bound port.
    """

    pass
