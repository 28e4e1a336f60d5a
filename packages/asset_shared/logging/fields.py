"""Canonical logging field names for structured asset logs.

Keeping names centralized prevents drift between the store, the HTTP ingress
and the migration tooling.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Asset identity fields.
FILENAME = "filename"
HASH = "hash"
VARIANT = "variant"
FILE_ID = "file_id"
VISIBILITY = "visibility"

# Request correlation fields.
SESSION_ID = "session_id"

# Public API invocation fields.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
OUTCOME = "outcome"
STAGE = "stage"
CONCERN = "concern"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
