#!/usr/bin/env python3
"""
Quick launcher for the HabiBot greeter.

Run from project root: python greet.py --context context-Downtown_5f --greeting-file greeting.txt
Or: ./greet.py (after chmod +x greet.py)
"""

import sys
import os

# Add habitat_client to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'habitat_client'))

from habibot.greeter import main

if __name__ == "__main__":
    main()
