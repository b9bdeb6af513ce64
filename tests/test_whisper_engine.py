from types import SimpleNamespace

import numpy as np

from recitekit.services import whisper_engine as engine_mod
from recitekit.services.whisper_engine import DecodingOptions, WhisperEngine


def test_mock_engine_reports_duration(settings):
    engine = WhisperEngine(settings)
    text = engine.transcribe(np.zeros(32_000, dtype=np.float32), DecodingOptions())
    assert text == "[mock transcript 32000 samples / 2.0s]"
    engine.prewarm()
    assert engine.is_loaded


def test_real_engine_uses_greedy_fixed_options(settings, monkeypatch, tmp_path):
    calls = {}

    class DummyModel:
        def __init__(self, path, device, compute_type):
            calls["init"] = (path, device, compute_type)

        def transcribe(self, audio, **kwargs):
            calls["kwargs"] = kwargs
            segments = [
                SimpleNamespace(text=" <|ar|>بسم الله "),
                SimpleNamespace(text="الرحمن الرحيم<|endoftext|>"),
            ]
            return iter(segments), SimpleNamespace(language="ar")

    monkeypatch.setattr(engine_mod, "WhisperModel", DummyModel)
    settings = settings.model_copy(update={"whisper_mock_transcriber": False})
    engine = WhisperEngine(settings)
    engine.load_models(tmp_path)

    text = engine.transcribe(np.zeros(16_000), DecodingOptions(language="ar"))

    assert text == "بسم الله الرحمن الرحيم"
    assert calls["init"] == (str(tmp_path), "cpu", "int8")
    assert calls["kwargs"]["beam_size"] == 1
    assert calls["kwargs"]["temperature"] == 0.0
    assert calls["kwargs"]["without_timestamps"] is True
    assert calls["kwargs"]["language"] == "ar"


def test_switching_model_folder_unloads_previous(settings, monkeypatch, tmp_path):
    created = []

    class DummyModel:
        def __init__(self, path, **_):
            created.append(path)

    monkeypatch.setattr(engine_mod, "WhisperModel", DummyModel)
    engine = WhisperEngine(settings.model_copy(update={"whisper_mock_transcriber": False}))
    engine.load_models(tmp_path / "a")
    engine.load_models(tmp_path / "a")
    engine.load_models(tmp_path / "b")
    assert created == [str(tmp_path / "a"), str(tmp_path / "b")]
