"""Multiplayer pick/ban draft rooms with real-time WebSocket sync"""
