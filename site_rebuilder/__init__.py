# site_rebuilder/__init__.py
"""
SiteRebuilder package initializer.
Crawls a website and drives a generation platform to rebuild it as a modern one-page site.
"""
__version__ = "0.1.0"
