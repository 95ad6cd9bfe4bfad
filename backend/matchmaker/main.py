from flask import Blueprint, current_app, jsonify
from matchmaker import credentials
from matchmaker.credentials import Issuer, VerificationError
from matchmaker.errors import NotFound
from matchmaker.models import MatchRecord
from matchmaker.services.ledger import matches, players
from matchmaker.services.ledger.counters import SESSION_SEQUENCE, next_value
from matchmaker.services.ledger.locks import locks, player_key, sequence_key, session_key
from matchmaker.services.ledger.transaction import unit_of_work
from matchmaker.services.rating import elo

main = Blueprint('main', __name__)

# Body of a refused /login; the reason is never disclosed
LOGIN_FAILURE = 'invalid'


def _text(body, status=200):
    return current_app.response_class(body, status=status, mimetype='text/plain')


def _failure():
    return jsonify({'success': False})


def _verify(raw, issuer, endpoint):
    """Decoded credential, or None. Callers only ever see a uniform failure."""
    try:
        return credentials.verify(raw, issuer)
    except VerificationError as exc:
        current_app.logger.debug(f"[reject] /{endpoint} {type(exc).__name__}: {exc}")
        return None


@main.route('/')
def index():
    return jsonify({'message': 'Matchmaker session service'})


@main.route('/signup')
@main.route('/signup/')
def signup():
    pid = players.create_player()
    credential = credentials.issue_login(pid)
    current_app.logger.info(f"[signup] pid={pid}")
    return _text(credential.raw)


@main.route('/login/<credential>')
def login(credential):
    login_cred = _verify(credential, Issuer.LOGIN, 'login')
    if login_cred is None:
        return _text(LOGIN_FAILURE, 401)
    pid = login_cred.subject_pid

    with locks.hold(player_key(pid), sequence_key(SESSION_SEQUENCE)):
        with unit_of_work():
            try:
                player = players.get_player(pid, for_update=True)
            except NotFound:
                current_app.logger.debug(f"[reject] /login unknown pid={pid}")
                return _text(LOGIN_FAILURE, 401)

            # Hand back the outstanding match credential while it is still good
            outstanding = None
            if player.credential:
                outstanding = _verify(player.credential, Issuer.MATCH, 'login')
            if outstanding is not None:
                if outstanding.payload.rating == player.rating:
                    current_app.logger.info(f"[login-reuse] pid={pid} session={outstanding.session_id}")
                    return _text(outstanding.raw)
                # Same session, current rating
                session_id = outstanding.session_id
                current_app.logger.info(
                    f"[login-refresh] pid={pid} session={session_id} "
                    f"rating {outstanding.payload.rating} -> {player.rating}"
                )
            else:
                session_id = next_value(SESSION_SEQUENCE)
            match_cred = credentials.issue_match(pid, session_id, rating=player.rating)
            players.set_credential(pid, match_cred.raw)

    current_app.logger.info(f"[login] pid={pid} session={session_id} expires_at={match_cred.expires_at}")
    return _text(match_cred.raw)


@main.route('/info/<credential>')
def info(credential):
    login_cred = _verify(credential, Issuer.LOGIN, 'info')
    if login_cred is None:
        return _failure()
    try:
        player = players.get_player(login_cred.subject_pid)
    except NotFound:
        return _failure()
    payload = player.to_dict()
    payload['success'] = True
    return jsonify(payload)


@main.route('/cancel/<credential>')
def cancel(credential):
    match_cred = _verify(credential, Issuer.MATCH, 'cancel')
    if match_cred is None:
        return _failure()
    pid = match_cred.subject_pid
    if match_cred.payload.matched:
        # Too late: the player already has an opponent
        current_app.logger.info(f"[cancel] pid={pid} session={match_cred.session_id} refused, already matched")
        return _failure()

    with locks.hold(player_key(pid)):
        with unit_of_work():
            try:
                player = players.get_player(pid, for_update=True)
            except NotFound:
                return _failure()
            if player.credential != match_cred.raw:
                # Only the outstanding credential can withdraw the player
                current_app.logger.info(f"[cancel] pid={pid} session={match_cred.session_id} not outstanding")
                return _failure()
            players.clear_credential(pid)

    current_app.logger.info(f"[cancel] pid={pid} session={match_cred.session_id} matchmaking aborted")
    return jsonify({'success': True})


@main.route('/submit/<credential>')
def submit(credential):
    result = _verify(credential, Issuer.GAME_SERVER, 'submit')
    if result is None:
        return _failure()
    pid = result.subject_pid
    session_id = result.session_id
    player_ids = result.payload.players
    scores = result.payload.scores

    keys = [session_key(session_id)] + [player_key(p) for p in player_ids]
    with locks.hold(*keys):
        with unit_of_work():
            try:
                rated = [players.get_player(p, for_update=True) for p in player_ids]
            except NotFound as exc:
                current_app.logger.info(f"[submit] session={session_id} refused: {exc} does not exist")
                return _failure()

            k = float(current_app.config.get('RATING_K_FACTOR', 32))
            before = (rated[0].rating, rated[1].rating)
            after = elo.update(before, scores, k)
            if not all(elo.storable(r) for r in after):
                current_app.logger.warning(
                    f"[submit] session={session_id} refused: scores={list(scores)} "
                    f"before={list(before)} give unstorable ratings {list(after)}"
                )
                return _failure()

            outcome = matches.insert_if_absent(MatchRecord(
                session_id=session_id,
                player0_id=player_ids[0],
                player1_id=player_ids[1],
                score0=scores[0],
                score1=scores[1],
                submitted_by=pid,
            ))
            players.clear_credential(pid)

            if outcome is matches.InsertOutcome.INSERTED:
                for player_id, rating in zip(player_ids, after):
                    players.apply_rating(player_id, rating)
                current_app.logger.info(
                    f"[rating] session={session_id} players={list(player_ids)} scores={list(scores)} "
                    f"before={list(before)} after={[elo.truncate(r) for r in after]}"
                )

    if outcome is matches.InsertOutcome.ALREADY_EXISTS:
        current_app.logger.info(f"[submit-duplicate] session={session_id} pid={pid} ratings untouched")
    else:
        current_app.logger.info(f"[submit] session={session_id} pid={pid} recorded")
    return jsonify({'success': True})
