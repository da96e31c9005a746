"""Pipeline activities.

Each activity performs a single stage of the landmass build:
- read_osm: Stream ways and relations out of an OSM extract (XML, or PBF via read_pbf)
- read_pbf: Decode binary .osm.pbf extracts with pyosmium
- classify_features: Tag features as coastline, tidal, water or irrelevant
- assemble_rings: Join coastline fragments into closed rings
- resolve_relations: Turn multipolygon relations into polygons with holes
- boolean_ops: Union each class and subtract water from land
- clip_boundary: Close open coastline against an extract boundary
- build_landmass: Order, measure and filter the output polygons
- write_geojson: Encode the result as GeoJSON
"""
