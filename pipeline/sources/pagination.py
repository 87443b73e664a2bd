"""Token pagination shared by the object-store listings.

boto3 clients expose paginators, but unit-test fakes often only implement the
raw list call. :func:`paginate_items` prefers the paginator and falls back to
a continuation-token loop, yielding items in the order the backend returns
them.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional, Sequence, Tuple

from botocore.exceptions import OperationNotPageableError


def paginate_items(
    client: Any,
    operation: str,
    result_key: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    request_token_key: str = "NextToken",
    response_token_keys: Sequence[str] = ("NextToken",),
    paginator_fallback_exceptions: Tuple[type[Exception], ...] = (OperationNotPageableError,),
) -> Iterator[Dict[str, Any]]:
    """Yield dict items from paginator when available, else token-loop fallback.

    Only ``paginator_fallback_exceptions`` raised while *creating* the
    paginator trigger the fallback. Errors raised by the service while
    paging propagate to the caller unchanged.
    """
    params = dict(params or {})

    if hasattr(client, "get_paginator"):
        try:
            paginator = client.get_paginator(operation)
        except paginator_fallback_exceptions:
            paginator = None
        if paginator is not None:
            for page in paginator.paginate(**params):
                for item in page.get(result_key, []) or []:
                    if isinstance(item, dict):
                        yield item
            return

    call = getattr(client, operation, None)
    if call is None:
        raise AttributeError(f"client has no operation {operation}")

    next_token: Optional[str] = None
    while True:
        req = dict(params)
        if next_token:
            req[request_token_key] = next_token
        resp = call(**req) if req else call()
        for item in resp.get(result_key, []) or []:
            if isinstance(item, dict):
                yield item

        next_token = None
        for key in response_token_keys:
            token = resp.get(key)
            if token:
                next_token = str(token)
                break
        if not next_token:
            break
