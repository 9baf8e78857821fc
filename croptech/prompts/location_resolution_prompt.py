LOCATION_RESOLUTION_PROMPT = """
Find the precise location for "{query}" in India using Google Maps.
I need the Latitude, Longitude, and the 6-digit PIN code.
Return the output in this specific string format:
"LAT: <latitude>, LNG: <longitude>, PIN: <pincode>, ADDR: <full address>"
Example: LAT: 19.0760, LNG: 72.8777, PIN: 400001, ADDR: Mumbai, Maharashtra
"""
