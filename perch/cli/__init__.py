"""
Perch CLI.

Usage:
    perch bruno --url http://localhost:8000/introspection --out-dir ./bruno
    perch routes myapp.main:app
    perch serve myapp.main:app --port 8000
"""

__version__ = "0.1.0"
__cli_name__ = "perch"
