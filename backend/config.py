import os


def _env_flag(name, default='false'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of origins allowed to open a socket / call the API
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
        ).split(',') if o.strip()
    ]
    # Code lengths (uppercase alphanumeric)
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    PLAYER_CODE_LENGTH = int(os.environ.get('PLAYER_CODE_LENGTH', '4'))
    # Upper bound for a single assign_tickets request
    MAX_TICKETS_PER_ASSIGN = int(os.environ.get('MAX_TICKETS_PER_ASSIGN', '6'))
    # Chat log retention and message size
    CHAT_HISTORY_LIMIT = int(os.environ.get('CHAT_HISTORY_LIMIT', '200'))
    CHAT_MAX_LENGTH = int(os.environ.get('CHAT_MAX_LENGTH', '500'))
    # Abandoned room teardown (seconds). 0 disables the sweeper.
    ROOM_IDLE_TTL_SEC = int(os.environ.get('ROOM_IDLE_TTL_SEC', '21600'))
    SWEEP_INTERVAL_SEC = int(os.environ.get('SWEEP_INTERVAL_SEC', '300'))
    # Optional: tell the caller when a command was dropped
    NOTIFY_DROPPED_COMMANDS = _env_flag('NOTIFY_DROPPED_COMMANDS')
    # Optional: seed the engine's random source for reproducible runs
    RANDOM_SEED = os.environ.get('RANDOM_SEED')
