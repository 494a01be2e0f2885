"""Reply formatting and dispatch."""

from .sender import MailSender, add_reply_prefix, build_reply_body, quote_body

__all__ = ["MailSender", "add_reply_prefix", "build_reply_body", "quote_body"]
