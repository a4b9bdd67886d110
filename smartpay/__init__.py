"""
AI Smart Pay - Source Package

A local-first credit card wallet that asks a generative AI which card to use
for a purchase and turns the answer into concrete dollar estimates.

DESIGN PRINCIPLES:
1. AI suggests → deterministic code reconciles → user decides
2. Fail early, fail visibly
3. No silent corrections
4. Every wallet change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "AI Smart Pay Team"
