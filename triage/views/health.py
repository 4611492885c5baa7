from django.core.cache import cache
from django.db import connections
from django.http import JsonResponse

from ..models import Department


def healthz(request):
    """Database and cache liveness; both back queue numbering and wait estimates."""
    checks = {}
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        checks['db'] = bool(row and row[0] == 1)
        checks['departments'] = Department.objects.filter(open=True).count()
    except Exception as e:
        return JsonResponse({'ok': False, 'db': False, 'error': str(e)}, status=500)
    try:
        cache.set('healthz', 1, 5)
        checks['cache'] = cache.get('healthz') == 1
    except Exception as e:
        checks['cache'] = False
        checks['cacheError'] = str(e)
    ok = checks['db'] and checks['cache']
    return JsonResponse({'ok': ok, **checks}, status=200 if ok else 503)
