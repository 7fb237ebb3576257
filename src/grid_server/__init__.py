"""
Chart Grid Server

HTTP API over a ResourceRegistry: chart resources, rendered series, shared
swing analysis settings and volume profiles.
"""
