"""Launch MCP Inspector against the idregistry-mcp server."""

import shutil
import subprocess
import sys


def main() -> None:
    runner = shutil.which("bunx") or shutil.which("npx")
    if not runner:
        print("Neither bunx nor npx found. Install Bun or Node.js.", file=sys.stderr)
        sys.exit(1)

    server = shutil.which("idregistry-mcp")
    if server:
        cmd = [runner, "@modelcontextprotocol/inspector", server]
    else:
        cmd = [runner, "@modelcontextprotocol/inspector", sys.executable, "-m", "idregistry.mcp.server"]
    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        pass
