"""Prompt text for the completion service."""

LEGAL_ENRICHMENT_SYSTEM_PROMPT = (
    "You are a healthcare legal expert with deep knowledge of abortion laws and regulations "
    "across all U.S. states. Provide comprehensive, accurate, and up-to-date information about "
    "abortion laws, including specific legal citations, requirements, and resources. Focus on "
    "factual, legally verified information."
)

LEGAL_ENRICHMENT_PROMPT = """
Generate comprehensive, factual information about current abortion laws and regulations in {state}. Include:

1. Current restrictions (be very specific about current laws)
2. Requirements for patients (include all medical and legal requirements)
3. Recent legal updates (with actual dates and specific changes)
4. Emergency contacts and resources
5. Official documents and references

Base this on verified legal sources and respond with a single JSON object with this structure:
{{
  "restrictions": ["detailed list of current restrictions with specific legal references"],
  "requirements": ["detailed list of current requirements including waiting periods, counseling, etc"],
  "recentUpdates": [
    {{"date": "YYYY-MM-DD", "description": "the legal change", "impact": "impact on access and services"}}
  ],
  "newsArticles": [
    {{"title": "Article title", "url": "Article URL", "source": "News source name",
      "date": "YYYY-MM-DD", "summary": "Brief summary", "state": "{state}"}}
  ],
  "additionalNotes": "important context about implementation and access",
  "emergencyContacts": [
    {{"name": "organization name", "phone": "phone number with area code", "available24x7": true}}
  ],
  "officialDocuments": [
    {{"title": "full title of the document", "url": "direct URL", "type": "legislation | guidance | policy"}}
  ]
}}
""".strip()

CLINIC_GENERATION_SYSTEM_PROMPT = (
    "You are a healthcare database expert. Generate realistic clinic data with accurate "
    "geographic coordinates and area codes. Return only a properly formatted JSON array."
)

CLINIC_GENERATION_PROMPT = """
Create a detailed list of exactly {count} clinics in {state}. For each clinic, include:
1. A name (e.g., "Women's Health Center of {state}")
2. A complete address in {state}
3. A phone number with valid area code for {state}
4. Latitude and longitude within {state}'s boundaries

Format each clinic exactly like this example:
{{
  "name": "Women's Health Center",
  "address": "123 Main Street, City, {state} ZIP",
  "phone": "(XXX) XXX-XXXX",
  "latitude": XX.XXXX,
  "longitude": -XX.XXXX
}}

Return ONLY a JSON array containing these {count} clinics with no additional text.
""".strip()
