import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_HANDLER_NAME = "agent-stream"


def configure_logging(level: str = "INFO") -> logging.Logger:
	"""Attach a single timestamped stream handler to the root logger.

	Calling it again only updates the level, so app factories and tests can
	call it freely.
	"""
	root = logging.getLogger()
	root.setLevel(level.upper())
	if not any(getattr(h, "name", None) == _HANDLER_NAME for h in root.handlers):
		handler = logging.StreamHandler(sys.stdout)
		handler.set_name(_HANDLER_NAME)
		handler.setFormatter(logging.Formatter(LOG_FORMAT))
		root.addHandler(handler)

	# Keep third-party transport chatter out of INFO output.
	for noisy in ("httpx", "httpcore", "openai", "aiosqlite"):
		logging.getLogger(noisy).setLevel(logging.WARNING)
	return root
