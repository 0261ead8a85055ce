"""Battle.net profile access."""
