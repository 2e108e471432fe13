"""
Command line interface for the AppStudio installer.
"""
