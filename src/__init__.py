"""
Tarushiru - Source Package

A single-user self-understanding workspace: a journal with AI emotion
analysis, monthly asset and budget tracking, goals and a career profile.
All data lives in one JSON document on the local machine.

DESIGN PRINCIPLES:
1. Input is parsed before it touches the document
2. Every change is written through immediately
3. A corrupt document is never overwritten on load
4. AI results attach only if they are still the latest
5. Every step must be auditable
"""

__version__ = "1.0.0"
__author__ = "Tarushiru Team"
