"""Multiplayer room-state synchronizer for a turn-based card game."""
