import json

from poke_a_bone.storage import HIGH_SCORE_KEY, JsonFileStore, MemoryStore, load_high_score, save_high_score


def test_json_store_persists_high_score_as_decimal_string(tmp_path):
    path = tmp_path / 'scores.json'
    store = JsonFileStore(path)
    assert load_high_score(store) == 0
    assert save_high_score(store, 1234)
    assert json.loads(path.read_text(encoding='utf-8')) == {HIGH_SCORE_KEY: '1234'}
    assert load_high_score(JsonFileStore(path)) == 1234


def test_json_store_keeps_other_keys(tmp_path):
    path = tmp_path / 'scores.json'
    path.write_text(json.dumps({'player': 'ana'}), encoding='utf-8')
    save_high_score(JsonFileStore(path), 50)
    assert json.loads(path.read_text(encoding='utf-8')) == {'player': 'ana', HIGH_SCORE_KEY: '50'}


def test_json_store_creates_missing_directories(tmp_path):
    path = tmp_path / 'nested' / 'dir' / 'scores.json'
    assert save_high_score(JsonFileStore(path), 7)
    assert load_high_score(JsonFileStore(path)) == 7


def test_garbled_file_reads_as_zero(tmp_path, capsys):
    path = tmp_path / 'scores.json'
    path.write_text('{not json', encoding='utf-8')
    assert load_high_score(JsonFileStore(path)) == 0
    assert 'Could not read high score' in capsys.readouterr().err
    # writing replaces the broken file
    assert save_high_score(JsonFileStore(path), 10)
    assert load_high_score(JsonFileStore(path)) == 10


def test_non_object_json_reads_as_zero(tmp_path):
    path = tmp_path / 'scores.json'
    path.write_text('[1, 2, 3]', encoding='utf-8')
    assert load_high_score(JsonFileStore(path)) == 0


def test_malformed_value_reads_as_zero(capsys):
    store = MemoryStore({HIGH_SCORE_KEY: 'lots'})
    assert load_high_score(store) == 0
    assert 'malformed high score' in capsys.readouterr().err


def test_unwritable_location_fails_softly(tmp_path, capsys):
    # a directory cannot be opened as a file
    store = JsonFileStore(tmp_path)
    assert save_high_score(store, 99) is False
    assert 'Could not save high score' in capsys.readouterr().err
