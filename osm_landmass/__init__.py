"""OSM Landmass Generator.

Builds true-landmass polygons from OpenStreetMap extracts: closed land
rings are assembled from ``natural=coastline`` fragments, inland water
bodies (lakes, riverbanks, reservoirs) are unioned, and the water is
subtracted from the land to leave dry ground only.
"""

__version__ = "0.1.0"
