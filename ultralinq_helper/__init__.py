"""
UltraLinq Report Helper

Scrapes vascular ultrasound studies from the UltraLinq study viewer, normalizes
them into StudyRecords and hands them to the report-generation service, which
drafts the narrative report with Gemini.

Packages:
- scraping: selector registry, field resolver, view classifier, study scraper,
  image handshake and study-list extractor
- sandbox: the browser boundary (Selenium) used to read and navigate pages
- clients: HTTP client for the report-generation service
- service: the FastAPI report-generation service itself
"""

__version__ = "1.2.0"
