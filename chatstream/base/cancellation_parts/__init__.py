"""Cancellation implementation parts (see ``chatstream.base.cancellation``)."""
