"""Client-side PostgreSQL wire protocol: frontend messages, binary value formats, authentication, escaping and catalogue parsing."""

__version__ = "0.1.0"