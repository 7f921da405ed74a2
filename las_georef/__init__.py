"""Georeference a LiDAR LAS point file with an interpolated pose trajectory."""
