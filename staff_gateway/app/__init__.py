"""
Staff Gateway client package.

The gateway client fronts every call to the staff backend, handling:
- Authentication: bearer credentials from the process-wide credential store
- Envelope unwrapping of the backend's response wrapper
- Error classification and user notifications
- Single-flight renewal of expired access credentials

Structure:
- app.main: builds a configured client from settings.
- app.client: the GatewayClient facade.
- app.credentials: credential store and persistence backends.
- app.envelope: response envelope normalization.
- app.errors: error taxonomy and classifier.
- app.auth: refresh coordinator and session lifecycle.
- app.notifications: user-visible notification sinks.
- app.adapters: auth endpoint wrapper.
"""
