"""
Application-level constants for the signaling protocol.

These values are part of the wire contract with clients and should NEVER
be changed via environment variables or configuration.

For configurable values (bind address, heartbeat interval, frame size),
see signal_relay/settings.py.
"""

# ============================================================================
# Envelope Protocol Constants
# ============================================================================

# Envelope type a client sends to claim an identity
REGISTER_TYPE = "register"

# Envelope type of every server-originated failure reply
ERROR_TYPE = "error"

# Sender id the relay uses for its own envelopes
SERVER_SENDER_ID = "server"

# Reply text when the addressed identity has no open connection
RECIPIENT_NOT_AVAILABLE = "Recipient not available"


# ============================================================================
# WebSocket Protocol Constants
# ============================================================================

# Timeout (seconds) when closing WebSocket connections gracefully
# Ensures connections don't hang indefinitely during shutdown
WS_CLOSE_TIMEOUT_SECONDS = 5


# ============================================================================
# Logging
# ============================================================================

# Upper bound for a single JSON log line shipped to Loki
LOKI_MAX_LOG_SIZE_BYTES = 256 * 1024

# Length of connection ids used as log correlation ids
CONNECTION_ID_LENGTH = 8
