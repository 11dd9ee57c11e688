"""Agent entry point for running the pvedsc agent."""

import asyncio
import sys

from pvedsc.agent.main import run_agent


def main():
    """Run the pvedsc agent."""
    try:
        asyncio.run(run_agent())
    except KeyboardInterrupt:
        print("\nAgent shutdown requested")
        sys.exit(0)
    except Exception as e:
        print(f"Agent error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
