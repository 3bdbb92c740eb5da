import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('STORE_BACKEND', 'memory')
os.environ.setdefault('VAPI_WEBHOOK_SECRET', '')
