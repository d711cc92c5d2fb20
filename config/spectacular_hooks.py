"""
drf-spectacular preprocessing hooks.
"""


def preprocess_exclude_gateway(endpoints, **kwargs):
    """Keep gateway-facing callbacks and internal endpoints out of the public API docs."""
    filtered = []
    for (path, path_regex, method, callback) in endpoints:
        # Razorpay posts here, supporters never do
        if path.startswith('/api/payments/webhooks/') or path == '/webhook':
            continue
        if path.startswith('/admin/'):
            continue
        if path in ('/health/',):
            continue
        filtered.append((path, path_regex, method, callback))
    return filtered
