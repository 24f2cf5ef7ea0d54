"""Rosary circle backend: prayer groups and the monthly mystery rotation."""
