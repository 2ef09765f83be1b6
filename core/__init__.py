# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains ALL the logic of the Cortellis tool server:
#   - query_builder.py : structured params → vendor query string → URL
#   - digest_auth.py   : the HTTP Digest handshake around every request
#   - cortellis.py     : the tool operations (build → fetch → wrap)
#   - models.py, config.py, errors.py : the nouns, the settings, the failures
#
# CRITICAL ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP or FastAPI, and nothing here
#   reads os.environ.  Settings arrive as an argument; the network arrives
#   as an httpx transport.  query_builder.py has no I/O at all.
# =============================================================================
