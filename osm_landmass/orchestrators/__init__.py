"""Pipeline orchestration.

Runs the activities end to end for one extract:
1. Classify the decoded features
2. Land phase and water phase, each producing source polygons
3. Combine: union land, union water, subtract, optional clip
4. Build the ordered output polygons
"""
