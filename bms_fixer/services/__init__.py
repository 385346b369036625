"""
BMS Chart Fixer - Services.

Chart model, file enumeration and the batch fixing driver.
"""
