"""
Prompt for the dashboard's analysis panel.
Kept in the application layer next to the use-case that parses the reply,
independent from any model SDK.
"""

ANALYSIS_PROMPT = """Analyze this {symbol} stock data:
Current Price: {current_price}
{window}-day Price Change: {change_percent}%
Recent Prices: {recent_prices}

Provide a concise analysis in JSON format with these keys:
- technical: Technical analysis of price movements
- sentiment: Market sentiment analysis
- signals: Trading signals with reasoning
- risk: Key risk factors

Keep each section under 50 words. Reply with the JSON object only.
"""
