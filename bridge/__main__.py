"""
Run the bridge with ``python -m bridge``.
"""

from bridge.main import run

if __name__ == "__main__":
    run()
