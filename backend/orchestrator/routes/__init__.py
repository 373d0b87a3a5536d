from importlib import import_module

modules = [
    'auth',
    'users',
    'teams',
    'brands',
    'briefs',
    'tasks',
    'deliverables',
    'comments',
    'attachments',
    'time_tracking',
    'notifications',
    'activity',
    'jsr',
    'messages',
    'templates',
    'search',
    'analytics',
]

for m in modules:
    import_module(f'.{m}', __name__)

__all__ = modules
