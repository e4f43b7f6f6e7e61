"""
Entry point for quizdrill.

Run with:
    python main.py --help
    python main.py exam BANK_ID --single 20 --judge 10
"""
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from src.cli.drill_cli import main

if __name__ == "__main__":
    main()
