# =============================================================================
# tools/__init__.py
# =============================================================================
# This package is the "translation layer" between MCP and core/.
#
#   registry.py    : every tool declared once (name, description, schema)
#                    plus the dispatcher call_tool(service, name, arguments)
#   mcp_server.py  : FastMCP wrappers around the registry
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT build queries or compute digests (that's in core/)
#   - They do NOT read credentials (main.py builds Settings and passes
#     a CortellisService in)
# =============================================================================
