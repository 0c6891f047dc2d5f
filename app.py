import os
import threading
import time

import numpy as np
from flask import Flask, jsonify, request

from board_engine import BoardEngine, Direction

app = Flask(__name__)

# ------------------------------ configuration ------------------------------
app.config["INPUT_DELAY"] = float(os.environ.get("INPUT_DELAY", "0.2"))
GAME_SEED = os.environ.get("GAME_SEED")


def new_engine() -> BoardEngine:
    seed = int(GAME_SEED) if GAME_SEED else None
    return BoardEngine(rng=np.random.default_rng(seed))


game = new_engine()  # Initialize game here
_lock = threading.Lock()

# Presentation-side state: debounce timestamp and game-over gate.
last_input_time = float("-inf")
game_over = False


def _accepting_input(now: float) -> bool:
    return not game_over and now - last_input_time >= app.config["INPUT_DELAY"]


@app.route('/init', methods=['GET'])
def init_game():
    global game_over, last_input_time
    with _lock:
        game.reset()
        game_over = False
        last_input_time = float("-inf")
        snapshot = game.snapshot()
    app.logger.info("New game")
    return jsonify(**snapshot.to_dict())


@app.route('/state', methods=['GET'])
def state():
    with _lock:
        snapshot = game.snapshot()
    return jsonify(**snapshot.to_dict())


@app.route('/move', methods=['POST'])
def move():
    global game_over, last_input_time
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or 'action' not in payload:
        return jsonify(error="Request body must be JSON with an 'action' field."), 400
    try:
        action = Direction.parse(payload['action'])
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    with _lock:
        now = time.monotonic()
        if not _accepting_input(now):
            snapshot = game.snapshot()
            return jsonify(**snapshot.to_dict(), moved=False, accepted=False)

        moved = game.move(action)
        if moved:
            game.spawn_tile()
            # only a move that changed the board starts a new debounce window
            last_input_time = now
        snapshot = game.snapshot()
        if snapshot.game_over and not game_over:
            app.logger.info("Game over with score %d", snapshot.score)
        game_over = snapshot.game_over
    return jsonify(**snapshot.to_dict(), moved=moved, accepted=True)


if __name__ == '__main__':
    app.run(debug=True)
