import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # JSON file with game tunables; built-in defaults are used if missing or malformed
    GAME_CONFIG_PATH = os.environ.get('GAME_CONFIG_PATH', 'config.json')
    # Scheduler tick period (ms)
    TICK_INTERVAL_MS = int(os.environ.get('TICK_INTERVAL_MS', '100'))
    # Extra time on the opening round for client load (ms)
    MATCHMAKING_SLACK_MS = int(os.environ.get('MATCHMAKING_SLACK_MS', '1000'))
    # Hold before a finished match is torn down so clients can animate (ms)
    GAME_OVER_GRACE_MS = int(os.environ.get('GAME_OVER_GRACE_MS', '1000'))
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000',
        ).split(',') if o.strip()
    ]
