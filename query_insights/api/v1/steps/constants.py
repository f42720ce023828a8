"""Constants for pipeline step routes."""

MAX_QUERIES_PER_REQUEST = 5000

COMPANY_REFERENCE_REQUIRED_DETAIL = "Either company_profile or company_vector is required"
