LIVE_CONTEXT_PROMPT = """
Perform a Google Search to find the CURRENT weather (Temperature in Celsius, Condition)
and the LATEST mandi/market prices for major agricultural crops in or near: {location}.
Summarize the key figures (Temp, top crop prices).
"""
