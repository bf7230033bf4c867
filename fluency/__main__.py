"""
Entry point for running Fluency Drill as a module.

Usage:
    python -m fluency simulate
    python -m fluency stats --namespace intervals
    python -m fluency --help
"""
from fluency.delivery.drill_cli import main

if __name__ == "__main__":
    main()
