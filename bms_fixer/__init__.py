"""
BMS Chart Fixer - Inspect and repair BMS rhythm-game chart files.

Scans ``.bms`` / ``.bme`` / ``.bml`` / ``.bmx`` files for over-long
channel 02 (measure length) values and truncates them in place.
"""
