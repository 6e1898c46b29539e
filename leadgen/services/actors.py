"""
Remote job (actor) identifiers used by the pipeline.
"""

# Google Maps places, with website email extraction
GOOGLE_MAPS_SCRAPER = "nwua9Gu5YrADL7ZDj"

# Contact details (emails, phones, social profiles) crawled from websites
CONTACT_SCRAPER = "vdrmO1lXCkhbPjE9j"

# Named decision makers extracted from company websites
DECISION_MAKER_FINDER = "curious_coder/decision-maker-email-extractor"

# Google organic search results (profile discovery and deep research)
GOOGLE_SEARCH_SCRAPER = "apify/google-search-scraper"
