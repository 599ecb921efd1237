from schrijfcoach import config


def test_known_education_level():
    assert config.get_education_level("vwo") == {
        "name": "VWO",
        "ageRange": "12-18 jaar",
        "complexity": config.load_education_levels()["VWO"]["complexity"],
    }


def test_unknown_level_falls_back_to_havo():
    assert config.get_education_level("XYZ")["name"] == "HAVO"
    assert config.get_education_level(None)["name"] == "HAVO"


def test_level_approach():
    assert "Stimuleer abstract denken" in config.get_level_approach("VWO")
    assert config.get_level_approach("XYZ") == []


def test_cors_origins(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://schrijfcoach.nl, http://localhost:4000 ,")
    assert config.get_cors_origins() == ["https://schrijfcoach.nl", "http://localhost:4000"]
    monkeypatch.delenv("CORS_ORIGINS")
    assert config.get_cors_origins() == config.DEFAULT_CORS_ORIGINS


def test_api_key_treats_empty_as_missing(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "")
    assert config.get_gemini_api_key() is None
