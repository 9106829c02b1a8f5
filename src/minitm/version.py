VERSION = "0.3.0"

# Export documents carry this as `schemaVersion`.
APP_SCHEMA_VERSION = 1
