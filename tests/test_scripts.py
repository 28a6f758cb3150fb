from scripts import init_db


def test_init_db_creates_schema(capsys):
    assert init_db.main([]) == 0
    out = capsys.readouterr().out
    assert "Schema ready" in out
    assert "cart_items" in out and "product_categories" in out


def test_drop_asks_first(monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt: "no")

    assert init_db.main(["--drop"]) == 1
    assert "Nothing dropped." in capsys.readouterr().out


def test_drop_without_question(capsys):
    assert init_db.main(["--drop", "-y"]) == 0
    out = capsys.readouterr().out
    assert "Dropped storefront tables" in out
    assert "Schema ready" in out
