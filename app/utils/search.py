def normalize_search_query(query: str) -> str:
    """
    Upper-case a free-text query and drop dashes so license plates match
    whether or not they were typed as "AB-123-C" or "AB123C"
    """
    return (query or "").replace("-", "").strip().upper()

def like_pattern(query: str) -> str:
    return f"%{normalize_search_query(query)}%"
