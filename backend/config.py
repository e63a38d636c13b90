import os


def _int_list(value):
    return tuple(int(part) for part in value.split(',') if part.strip())


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5000,http://127.0.0.1:5000',
        ).split(',')
        if origin.strip()
    ]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    # Ship lengths, placed in this order; at most 9 ships
    FLEET = _int_list(os.environ.get('FLEET', '5,4,3,3,2'))
    # Optional: fixed seed for reproducible ship placement
    PLACEMENT_SEED = int(os.environ['PLACEMENT_SEED']) if os.environ.get('PLACEMENT_SEED') else None
    # Optional: forfeit a player who holds the turn this long (sec). 0 disables.
    TURN_TIMEOUT_SEC = float(os.environ.get('TURN_TIMEOUT_SEC', '0'))
