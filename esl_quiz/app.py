"""FastAPI application with all routes."""
from __future__ import annotations

import logging
import random
import uuid
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse

from esl_quiz.config import Settings, load_settings, save_settings
from esl_quiz.db import Database, PersistenceError, WordListNotFound
from esl_quiz.models import DIFFICULTIES, EASY, HARD, WordEntry
from esl_quiz.quiz import LISTEN_INSTRUCTIONS, InvalidPool, QuizEngine, SessionNotStarted
from esl_quiz.ranking import month_key, period_key, stats_for, top_n
from esl_quiz.speech import Speaker, sentence_hash
from esl_quiz.tictactoe import TicTacToeGame

app = FastAPI(title="ESL Quiz")
log = logging.getLogger("esl_quiz.app")

# Global state (initialized in startup)
_db: Database | None = None
_settings: Settings | None = None
_speaker: Speaker | None = None
_active_sessions: dict[str, QuizEngine] = {}  # session_id -> engine
_tictactoe_games: dict[str, TicTacToeGame] = {}  # game_id -> game

HISTORY_SIZE = 100


def get_db() -> Database:
    assert _db is not None
    return _db


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_tts():
    s = get_settings()
    if s.tts_provider == "edge-tts":
        from esl_quiz.providers.tts_edge import EdgeTTSProvider
        return EdgeTTSProvider(voice=s.tts_voice, rate=s.tts_rate)
    elif s.tts_provider == "piper":
        from esl_quiz.providers.tts_piper import PiperTTSProvider
        return PiperTTSProvider(model=s.tts_voice)
    raise ValueError(f"Unknown TTS provider: {s.tts_provider}")


def get_speaker() -> Speaker:
    global _speaker
    if _speaker is None:
        _speaker = Speaker(_get_tts(), get_db(), get_settings().audio_cache_full_path)
    return _speaker


def _new_rng() -> random.Random:
    seed = get_settings().rng_seed
    return random.Random(seed) if seed is not None else random.Random()


def _new_engine() -> QuizEngine:
    s = get_settings()
    return QuizEngine(
        rng=_new_rng(),
        match_probability=s.easy_match_probability,
        avoid_repeat=s.avoid_repeat_prompt,
    )


def _speak_word(word: str) -> None:
    try:
        get_speaker().speak(word)
    except Exception as e:
        log.warning("Could not queue speech: %s", e)


def _speak_prompt(engine: QuizEngine) -> None:
    prompt = engine.session.current_prompt
    if prompt is not None:
        _speak_word(prompt.word)


def _get_engine(session_id) -> QuizEngine:
    engine = _active_sessions.get(session_id)
    if engine is None:
        raise HTTPException(404, "Session not found")
    return engine


def _session_view(session_id: str, engine: QuizEngine) -> dict:
    """What the browser needs to render a round. The prompt word itself is not sent."""
    s = engine.session
    prompt = s.current_prompt
    candidate = s.displayed_candidate
    return {
        "session_id": session_id,
        "difficulty": s.difficulty,
        "word_list_id": s.word_list_id,
        "word_list_title": s.word_list_title,
        "options": [w.word for w in s.current_options] if s.difficulty not in (EASY, HARD) else [],
        "candidate": candidate.word if candidate else None,
        "audio_hash": sentence_hash(prompt.word) if prompt else None,
        "feedback": s.last_feedback,
        "instructions": LISTEN_INSTRUCTIONS,
        "stats": engine.stats().to_dict(),
    }


def _parse_words(raw) -> list[WordEntry]:
    if not isinstance(raw, list):
        raise HTTPException(400, "words must be a list")
    words = []
    for item in raw:
        if isinstance(item, str):
            entry = WordEntry(item.strip())
        elif isinstance(item, dict):
            entry = WordEntry(
                word=str(item.get("word", "")).strip(),
                pronunciation_hint=item.get("pronunciation_hint") or None,
                subcategory=item.get("subcategory") or None,
            )
        else:
            raise HTTPException(400, "Each word must be a string or an object")
        if entry.word:
            words.append(entry)
    return words


@app.on_event("startup")
async def startup():
    global _db, _settings
    if _db is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _db = Database(_settings.db_full_path)
    log.info("Database: %s (%d word lists)", _settings.db_full_path, _db.get_word_list_count())


@app.on_event("shutdown")
async def shutdown():
    if _speaker:
        await _speaker.drain()
    if _db:
        _db.close()


# ── Static files ──────────────────────────────────────────────────────────

static_dir = Path(__file__).parent / "static"


@app.get("/")
async def index():
    return FileResponse(static_dir / "index.html")


@app.get("/style.css")
async def style():
    return FileResponse(static_dir / "style.css", media_type="text/css")


@app.get("/app.js")
async def script():
    return FileResponse(static_dir / "app.js", media_type="application/javascript")


# ── API: Quiz sessions ────────────────────────────────────────────────────

@app.post("/api/session/start")
async def api_session_start(request: Request):
    body = await request.json() if await request.body() else {}
    s = get_settings()
    db = get_db()

    difficulty = body.get("difficulty") or s.default_difficulty
    if difficulty not in DIFFICULTIES:
        raise HTTPException(400, f"Unknown difficulty: {difficulty}")

    list_id = body.get("word_list_id")
    pool = title = None
    if list_id:
        try:
            word_list = db.get_word_list(list_id)
        except WordListNotFound:
            raise HTTPException(404, "Word list not found")
        pool, title = word_list.words, word_list.title

    engine = _new_engine()
    result = engine.start(pool, difficulty, word_list_id=list_id, word_list_title=title)
    if isinstance(result, InvalidPool):
        log.info("Rejected %s session on list %s: %s", difficulty, list_id, result.message)
        raise HTTPException(400, result.message)

    if list_id:
        db.increment_usage(list_id)

    session_id = uuid.uuid4().hex
    _active_sessions[session_id] = engine
    log.info("Session %s started (%s, %d words)",
             session_id, difficulty, len(result.active_word_pool))
    _speak_prompt(engine)
    return _session_view(session_id, engine)


@app.post("/api/session/answer")
async def api_session_answer(request: Request):
    body = await request.json()
    engine = _get_engine(body.get("session_id"))

    try:
        if "accept" in body:
            result = engine.answer_yes_no(bool(body["accept"]))
        else:
            answer = body.get("answer")
            if not isinstance(answer, str):
                raise HTTPException(400, "No answer provided")
            result = engine.answer(answer)
    except SessionNotStarted:
        raise HTTPException(409, "Session has not started")
    except ValueError as e:
        raise HTTPException(400, str(e))

    session = result.session
    return {
        "correct": result.correct,
        "correct_word": session.current_prompt.word,
        "feedback": session.last_feedback,
        "feedback_duration_ms": get_settings().feedback_duration_ms,
        "stats": engine.stats().to_dict(),
    }


@app.post("/api/session/next")
async def api_session_next(request: Request):
    body = await request.json()
    session_id = body.get("session_id")
    engine = _get_engine(session_id)
    try:
        engine.next_prompt()
    except SessionNotStarted:
        raise HTTPException(409, "Session has not started")
    _speak_prompt(engine)
    return _session_view(session_id, engine)


@app.get("/api/session/{session_id}/stats")
async def api_session_stats(session_id: str):
    return _get_engine(session_id).stats().to_dict()


@app.post("/api/session/reset")
async def api_session_reset(request: Request):
    body = await request.json()
    engine = _active_sessions.pop(body.get("session_id"), None)
    if engine is None:
        raise HTTPException(404, "Session not found")
    engine.reset()
    return {"ok": True}


@app.post("/api/session/finish")
async def api_session_finish(request: Request):
    """End a session and add its score to this month's leaderboard.

    The session is discarded either way. If the write fails the score is
    lost and the response says so with ``persisted: false``.
    """
    body = await request.json()
    session_id = body.get("session_id")
    user_id = body.get("user_id", "")
    display_name = body.get("display_name", "") or user_id
    if not user_id:
        raise HTTPException(400, "No user_id provided")

    engine = _get_engine(session_id)
    del _active_sessions[session_id]
    data = engine.game_data()
    key = period_key()

    persisted = False
    if data["total_questions"] > 0:
        try:
            get_db().submit_score(
                user_id,
                display_name,
                data["word_list_id"],
                data["score"],
                data["total_questions"],
                key,
                word_list_title=data["word_list_title"],
            )
            persisted = True
        except PersistenceError as e:
            log.warning("Score for %s in session %s was not saved: %s", user_id, session_id, e)

    return {**data, "period_key": key, "persisted": persisted}


# ── API: Tic-tac-toe ──────────────────────────────────────────────────────

def _get_game(game_id) -> TicTacToeGame:
    game = _tictactoe_games.get(game_id)
    if game is None:
        raise HTTPException(404, "Game not found")
    return game


def _game_view(game_id: str, game: TicTacToeGame) -> dict:
    return {"game_id": game_id, **game.to_dict()}


@app.post("/api/tictactoe/start")
async def api_tictactoe_start(request: Request):
    body = await request.json() if await request.body() else {}
    db = get_db()
    list_id = body.get("word_list_id")
    pool = title = None
    if list_id:
        try:
            word_list = db.get_word_list(list_id)
        except WordListNotFound:
            raise HTTPException(404, "Word list not found")
        pool, title = word_list.words, word_list.title

    game = TicTacToeGame(rng=_new_rng())
    result = game.start(pool, word_list_id=list_id, word_list_title=title)
    if isinstance(result, InvalidPool):
        raise HTTPException(400, result.message)
    if list_id:
        db.increment_usage(list_id)

    game_id = uuid.uuid4().hex
    _tictactoe_games[game_id] = game
    log.info("Tic-tac-toe %s started (%d words)", game_id, len(game.pool))
    return _game_view(game_id, game)


@app.get("/api/tictactoe/{game_id}")
async def api_tictactoe_get(game_id: str):
    return _game_view(game_id, _get_game(game_id))


@app.post("/api/tictactoe/select")
async def api_tictactoe_select(request: Request):
    body = await request.json()
    game_id = body.get("game_id")
    game = _get_game(game_id)
    cell_id = body.get("cell")
    if not isinstance(cell_id, int):
        raise HTTPException(400, "No cell provided")
    try:
        cell = game.select(cell_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
    _speak_word(cell.word.word)
    return {**_game_view(game_id, game), "audio_hash": sentence_hash(cell.word.word)}


@app.post("/api/tictactoe/mark")
async def api_tictactoe_mark(request: Request):
    body = await request.json()
    game_id = body.get("game_id")
    game = _get_game(game_id)
    if "correct" not in body:
        raise HTTPException(400, "No verdict provided")
    try:
        result = game.mark(bool(body["correct"]))
    except ValueError as e:
        raise HTTPException(400, str(e))
    if result.winner:
        log.info("Tic-tac-toe %s finished: %s", game_id, result.winner)
    return {**_game_view(game_id, game), "correct": result.correct}


@app.post("/api/tictactoe/new-board")
async def api_tictactoe_new_board(request: Request):
    body = await request.json()
    game_id = body.get("game_id")
    game = _get_game(game_id)
    game.new_board()
    return _game_view(game_id, game)


@app.post("/api/tictactoe/new-round")
async def api_tictactoe_new_round(request: Request):
    body = await request.json()
    game_id = body.get("game_id")
    game = _get_game(game_id)
    game.new_round()
    return _game_view(game_id, game)


@app.delete("/api/tictactoe/{game_id}")
async def api_tictactoe_end(game_id: str):
    if _tictactoe_games.pop(game_id, None) is None:
        raise HTTPException(404, "Game not found")
    return {"ok": True}


# ── API: Leaderboard ──────────────────────────────────────────────────────

def _period_entries(key: str) -> dict:
    try:
        return get_db().fetch_period_entries(key)
    except PersistenceError as e:
        log.warning("Leaderboard unavailable: %s", e)
        raise HTTPException(503, "Leaderboard is temporarily unavailable")


@app.get("/api/leaderboard")
async def api_leaderboard(period: str | None = None, limit: int | None = None):
    key = period or period_key()
    n = limit if limit is not None else get_settings().leaderboard_size
    players = top_n(_period_entries(key), n)
    return {"period_key": key, "players": [p.to_dict() for p in players]}


@app.get("/api/leaderboard/periods")
async def api_leaderboard_periods():
    return {"periods": get_db().get_period_keys()}


@app.get("/api/leaderboard/user/{user_id}")
async def api_leaderboard_user(user_id: str, period: str | None = None):
    key = period or period_key()
    stats = stats_for(_period_entries(key), user_id)
    return {**stats.to_dict(), "period_key": key}


@app.get("/api/leaderboard/{year}/{month}")
async def api_leaderboard_month(year: int, month: int):
    try:
        key = month_key(year, month)
    except ValueError as e:
        raise HTTPException(400, str(e))
    players = top_n(_period_entries(key), HISTORY_SIZE)
    return {"period_key": key, "players": [p.to_dict() for p in players]}


# ── API: Word lists ───────────────────────────────────────────────────────

@app.get("/api/wordlists/public")
async def api_wordlists_public(
    difficulty: str | None = None,
    category: str | None = None,
    language: str | None = None,
    limit: int | None = None,
):
    lists = get_db().get_public_word_lists(
        difficulty=difficulty, category=category, language=language, limit=limit,
    )
    return [wl.to_dict() for wl in lists]


@app.get("/api/wordlists/search")
async def api_wordlists_search(q: str = ""):
    if not q.strip():
        return []
    return [wl.to_dict() for wl in get_db().search_word_lists(q)]


@app.post("/api/wordlists")
async def api_wordlists_create(request: Request):
    body = await request.json()
    title = body.get("title", "").strip()
    if not title:
        raise HTTPException(400, "No title provided")
    words = _parse_words(body.get("words", []))
    if not words:
        raise HTTPException(400, "A word list needs at least one word")

    db = get_db()
    list_id = db.create_word_list(
        title=title,
        words=words,
        created_by=body.get("created_by", ""),
        difficulty=body.get("difficulty", ""),
        is_public=bool(body.get("is_public", False)),
        description=body.get("description", ""),
        category=body.get("category", ""),
        language=body.get("language", "en"),
        tags=body.get("tags", []),
    )
    return db.get_word_list(list_id).to_dict()


@app.get("/api/wordlists/{list_id}")
async def api_wordlists_get(list_id: str):
    try:
        return get_db().get_word_list(list_id).to_dict()
    except WordListNotFound:
        raise HTTPException(404, "Word list not found")


@app.put("/api/wordlists/{list_id}")
async def api_wordlists_update(list_id: str, request: Request):
    body = await request.json()
    changes = {k: v for k, v in body.items() if k in (
        "title", "difficulty", "is_public", "description", "category", "language", "tags",
    )}
    if "words" in body:
        changes["words"] = _parse_words(body["words"])
        if not changes["words"]:
            raise HTTPException(400, "A word list needs at least one word")
    try:
        return get_db().update_word_list(list_id, **changes).to_dict()
    except WordListNotFound:
        raise HTTPException(404, "Word list not found")


@app.delete("/api/wordlists/{list_id}")
async def api_wordlists_delete(list_id: str):
    if not get_db().delete_word_list(list_id):
        raise HTTPException(404, "Word list not found")
    return {"ok": True}


@app.get("/api/users/{user_id}/wordlists")
async def api_user_wordlists(user_id: str):
    return [wl.to_dict() for wl in get_db().get_user_word_lists(user_id)]


@app.get("/api/users/{user_id}/progress")
async def api_user_progress(user_id: str, word_list_id: str | None = None):
    return get_db().get_user_progress(user_id, word_list_id)


# ── API: Speech ───────────────────────────────────────────────────────────

@app.post("/api/speak")
async def api_speak(request: Request):
    """Audio for a quiz prompt, the selected tic-tac-toe square, or an explicit word."""
    body = await request.json()
    if body.get("session_id"):
        prompt = _get_engine(body["session_id"]).session.current_prompt
        if prompt is None:
            raise HTTPException(409, "Session has not started")
        text = prompt.word
    elif body.get("game_id"):
        game = _get_game(body["game_id"])
        if game.selected is None:
            raise HTTPException(409, "No square selected")
        text = game.grid[game.selected].word.word
    else:
        text = body.get("word", "").strip()
    if not text:
        raise HTTPException(400, "No word provided")

    try:
        audio_hash = await get_speaker().audio_for(text)
    except Exception as e:
        raise HTTPException(500, f"TTS error: {e}")
    if audio_hash is None:
        raise HTTPException(500, "TTS generation failed")
    return {"audio_hash": audio_hash}


@app.get("/api/audio/{audio_hash}.mp3")
async def api_audio(audio_hash: str):
    s = get_settings()
    audio_path = s.audio_cache_full_path / f"{audio_hash}.mp3"
    if not audio_path.exists():
        raise HTTPException(404, "Audio not found")
    return FileResponse(audio_path, media_type="audio/mpeg")


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    global _speaker
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    # Rebuilt on next use with the new voice/provider
    _speaker = None
    return s.to_dict()
