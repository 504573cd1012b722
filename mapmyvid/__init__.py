"""
Map My Vid: travel video location extraction service.

Upload a travel video, let Gemini read the places it shows, geocode each one
through Google Places and plan a visiting route over the favourites.
"""

__version__ = "1.0.0"
