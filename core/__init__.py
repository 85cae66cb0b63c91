"""
Core collaborators for SimulPlay: identifier parsing, access tokens, the
Spotify Web API client and the background command worker.
"""
