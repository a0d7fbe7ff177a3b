"""CPQ backend: quotes, status board, e-mail delivery and insights."""
