# =============================================================================
# api/__init__.py
# =============================================================================
# The REST facade: the same tools as tools/mcp_server.py, served over plain
# HTTP with FastAPI.  Like tools/, it contains no query or auth logic; it
# validates nothing itself and defers to tools/registry.py and core/.
# =============================================================================
