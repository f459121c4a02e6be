"""Registry mutation auditing."""
