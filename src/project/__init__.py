"""Adapters for the project being upgraded: manifest, installed packages, tools."""
