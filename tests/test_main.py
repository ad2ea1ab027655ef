from __future__ import annotations


def test_run_serves_with_keepalive_pings_and_no_pong_timeout(monkeypatch):
    import main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    main.run()

    app, kwargs = calls[0]
    assert app is main.app
    assert kwargs["ws_ping_interval"] == main.settings.keepalive_interval_seconds
    assert kwargs["ws_ping_timeout"] is None
