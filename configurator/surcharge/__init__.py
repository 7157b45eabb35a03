"""
Material surcharge resolution.

Pure Python lookups over each product's upgrade-price table, walked as an
ordered chain of strategies (exact → prefix → substring → keyword →
percentage). The chain per pricing mode lives in registry.py.
"""
