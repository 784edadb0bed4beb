"""
Turf Core Package.

GPS signal conditioning and territory geometry for a location-based running game.

Package structure:
- proto: Data model (fixes, track snapshots, territory polygons)
- localization: Spherical geometry, scalar position filter, fix gate, signal conditioner
- domain: Path tracking, loop detection, territory union and claims, tracking session
- io: Fix log loading and run summary serialization
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
__author__ = "Turf Core Team"
