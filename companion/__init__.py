"""
Memory companion API for people living with dementia and their caregivers.
"""
__version__ = "1.0.0"
