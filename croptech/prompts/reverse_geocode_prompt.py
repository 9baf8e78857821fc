REVERSE_GEOCODE_PROMPT = """
Identify the 6-digit Indian PIN code (Postal Code) for the location at Latitude: {lat}, Longitude: {lng}.
Return ONLY the 6-digit PIN code as a string.
"""
