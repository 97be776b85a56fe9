"""
Intern Training Tracker
Blueprint registry.
"""
