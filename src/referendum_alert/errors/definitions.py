"""Error definitions surfaced through the HTTP layer."""

from __future__ import annotations

from referendum_alert.errors.alert_errors import AlertError

# -- Authentication --------------------------------------------------------

ErrUnauthorized = AlertError("unauthorized", status_code=401, code="unauthorized")
ErrAdminKeyInvalid = AlertError("forbidden", status_code=403, code="admin-key-invalid")

# -- Validation ------------------------------------------------------------

ErrInvalidReferendum = AlertError(
    "referendum id must be a positive integer", status_code=400, code="invalid-referendum"
)
ErrInvalidNetwork = AlertError(
    "network must be one of: dot, ksm", status_code=400, code="invalid-network"
)
ErrChatRequired = AlertError("chat required", status_code=400, code="chat-required")
ErrAddressRequired = AlertError(
    "addr & display are required", status_code=400, code="address-required"
)

# -- Lifecycle -------------------------------------------------------------

ErrEngineNotReady = AlertError("engine not initialized", status_code=503, code="engine-not-ready")
