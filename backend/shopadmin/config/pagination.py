DEFAULT_LIMIT = 10
MAX_LIMIT = 100

def normalize_pagination(page_raw, limit_raw):
    try:
        page = int(page_raw) if page_raw not in (None, '') else 1
        limit = int(limit_raw) if limit_raw not in (None, '') else DEFAULT_LIMIT
    except ValueError:
        raise ValueError('page/limit must be int')
    limit = max(1, min(limit, MAX_LIMIT))
    page = max(1, page)
    return page, limit
