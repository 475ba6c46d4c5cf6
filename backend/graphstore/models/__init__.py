"""Declarations consumed and relational structures produced."""
