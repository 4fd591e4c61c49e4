"""Realtime in-app notifications: backend procedures, change feed and client."""
