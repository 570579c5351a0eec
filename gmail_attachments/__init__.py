"""Pull attachments of one content type out of Gmail messages."""
