#!/usr/bin/env python3
"""
Run script for the breath/blow detector

Usage:
    python run_blow_detector.py run          # Detect a blow on the default microphone
    python run_blow_detector.py calibrate    # Measure the room's noise floor
    python run_blow_detector.py devices      # List input devices
    python run_blow_detector.py simulate     # Run against a synthetic source

Make sure to install dependencies first:
    pip install -e .
"""

import sys

from blowdetect.main import main

if __name__ == '__main__':
    sys.exit(main())
