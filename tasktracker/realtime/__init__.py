"""Realtime infrastructure (Socket.IO).

This package holds the socket server, the connection registry and the
publishers that turn task mutations into outbound events, so every realtime
feature shares one socket server.
"""
