"""
Properties app for the KorX platform.

This app manages listings, containers (towers, markets, sharaks) and the
units inside them, along with ownership history and cached nearby places.
"""
