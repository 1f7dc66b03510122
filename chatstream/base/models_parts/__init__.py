"""Model parts (see ``chatstream.base.models`` for the public surface)."""
