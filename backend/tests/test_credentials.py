import pytest

from matchmaker.credentials import (
    CredentialCodec,
    Expired,
    GameResultPayload,
    Issuer,
    IssuerMismatch,
    LoginPayload,
    MalformedPayload,
    MatchPayload,
    SignatureInvalid,
)

NOW = 1_700_000_000.0


@pytest.fixture()
def codec():
    return CredentialCodec('unit-test-secret', clock=lambda: NOW)


def result_payload(players=(0, 1), scores=(1.0, 0.0)):
    return GameResultPayload(players=players, scores=scores)


def test_login_credential_round_trip(codec):
    issued = codec.issue(Issuer.LOGIN, 7)
    decoded = codec.verify(issued.raw, Issuer.LOGIN)
    assert decoded == issued
    assert decoded.subject_pid == 7
    assert decoded.session_id is None
    assert decoded.expires_at is None
    assert decoded.payload == LoginPayload()


def test_match_credential_carries_session_and_expiry(codec):
    issued = codec.issue(Issuer.MATCH, 7, session_id=1, payload=MatchPayload(rating=1500), ttl=30)
    decoded = codec.verify(issued.raw, Issuer.MATCH)
    assert decoded.session_id == 1
    assert decoded.expires_at == int(NOW) + 30
    assert decoded.payload == MatchPayload(matched=False, rating=1500)


def test_token_is_url_safe(codec):
    raw = codec.issue(Issuer.GAME_SERVER, 0, session_id=3, payload=result_payload(), ttl=30).raw
    assert all(c.isalnum() or c in '-_.' for c in raw)


def test_issuer_is_enforced(codec):
    result = codec.issue(Issuer.GAME_SERVER, 0, session_id=3, payload=result_payload(), ttl=30)
    with pytest.raises(IssuerMismatch):
        codec.verify(result.raw, Issuer.LOGIN)
    login = codec.issue(Issuer.LOGIN, 0)
    with pytest.raises(IssuerMismatch):
        codec.verify(login.raw, Issuer.GAME_SERVER)


def test_unknown_issuer_label(codec):
    raw = codec._serializer.dumps({'iss': 'someone_else', 'pid': 0, 'data': {}})
    with pytest.raises(IssuerMismatch):
        codec.verify(raw, Issuer.LOGIN)


def test_other_secret_is_rejected(codec):
    foreign = CredentialCodec('another-secret', clock=lambda: NOW).issue(Issuer.LOGIN, 0)
    with pytest.raises(SignatureInvalid):
        codec.verify(foreign.raw, Issuer.LOGIN)


def test_swapped_claims_are_rejected(codec):
    mine = codec.issue(Issuer.LOGIN, 1).raw
    theirs = codec.issue(Issuer.LOGIN, 2).raw
    forged = theirs.rsplit('.', 1)[0] + '.' + mine.rsplit('.', 1)[1]
    with pytest.raises(SignatureInvalid):
        codec.verify(forged, Issuer.LOGIN)


@pytest.mark.parametrize('raw', ['', 'no-separator', 'a.b', '...'])
def test_garbage_is_rejected(codec, raw):
    with pytest.raises(SignatureInvalid):
        codec.verify(raw, Issuer.LOGIN)


def test_expiry(codec):
    issued = codec.issue(Issuer.MATCH, 7, session_id=1, payload=MatchPayload(), ttl=30)
    codec.clock = lambda: NOW + 30
    assert codec.verify(issued.raw, Issuer.MATCH).subject_pid == 7
    codec.clock = lambda: NOW + 31
    with pytest.raises(Expired):
        codec.verify(issued.raw, Issuer.MATCH)


def test_login_ttl_is_optional(codec):
    issued = codec.issue(Issuer.LOGIN, 7, ttl=10)
    assert issued.expires_at == int(NOW) + 10
    codec.clock = lambda: NOW + 11
    with pytest.raises(Expired):
        codec.verify(issued.raw, Issuer.LOGIN)


def signed(codec, **claims):
    base = {'iss': 'game_server', 'pid': 0, 'sid': 3, 'exp': int(NOW) + 60,
            'data': {'players': [0, 1], 'scores': [1, 0]}}
    base.update(claims)
    return codec._serializer.dumps({k: v for k, v in base.items() if v is not None})


def test_well_formed_result_accepts_extra_state(codec):
    raw = signed(codec, data={'players': [0, 1], 'scores': [0.5, 0.5], 'board': [[0, 1, 2]], 'done': True})
    decoded = codec.verify(raw, Issuer.GAME_SERVER)
    assert decoded.payload == GameResultPayload(players=(0, 1), scores=(0.5, 0.5))


@pytest.mark.parametrize('claims', [
    {'data': {'players': [0], 'scores': [1, 0]}},
    {'data': {'players': [0, 1, 2], 'scores': [1, 0]}},
    {'data': {'players': [0, 0], 'scores': [1, 0]}},
    {'data': {'players': [0, '1'], 'scores': [1, 0]}},
    {'data': {'players': [0, -1], 'scores': [1, 0]}},
    {'data': {'players': [0, 1], 'scores': [1]}},
    {'data': {'players': [0, 1], 'scores': [1, 'draw']}},
    {'data': {'players': [0, 1], 'scores': [1, float('nan')]}},
    {'data': {'players': [0, 1], 'scores': [True, False]}},
    {'data': {'players': [2, 1], 'scores': [1, 0]}},
    {'data': 'not-an-object'},
    {'pid': True},
    {'pid': None},
    {'sid': None},
    {'sid': 'three'},
    {'exp': None},
    {'exp': 'tomorrow'},
])
def test_malformed_results_are_rejected(codec, claims):
    with pytest.raises(MalformedPayload):
        codec.verify(signed(codec, **claims), Issuer.GAME_SERVER)


@pytest.mark.parametrize('data', [{}, {'matched': 'no'}, {'matched': False, 'rating': 'high'}])
def test_malformed_match_payload(codec, data):
    raw = codec._serializer.dumps({'iss': 'matchmaker', 'pid': 0, 'sid': 1, 'exp': int(NOW) + 60, 'data': data})
    with pytest.raises(MalformedPayload):
        codec.verify(raw, Issuer.MATCH)


def test_non_object_claims(codec):
    with pytest.raises(MalformedPayload):
        codec.verify(codec._serializer.dumps([1, 2, 3]), Issuer.LOGIN)


def test_issue_requires_ttl_outside_login(codec):
    with pytest.raises(ValueError):
        codec.issue(Issuer.MATCH, 7, session_id=1, payload=MatchPayload())
    with pytest.raises(ValueError):
        codec.issue(Issuer.GAME_SERVER, 0, session_id=1, payload=result_payload(), ttl=0)


def test_issue_checks_kind_fields(codec):
    with pytest.raises(ValueError):
        codec.issue(Issuer.MATCH, 7, payload=MatchPayload(), ttl=30)
    with pytest.raises(TypeError):
        codec.issue(Issuer.MATCH, 7, session_id=1, payload=LoginPayload(), ttl=30)
    with pytest.raises(ValueError):
        codec.issue(Issuer.LOGIN, -1)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        CredentialCodec('')
