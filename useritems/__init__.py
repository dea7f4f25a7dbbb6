"""User item storage: per-user uploads with derived previews in an object store."""
