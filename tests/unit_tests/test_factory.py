from __future__ import annotations

import asyncio
import io
import json
import re

import pytest

from multisink import (
    ConfigurationError,
    FactoryDestroyedError,
    FatalTargetError,
    InvalidColorError,
    InvalidTargetError,
    LoggerFactory,
    create_logger_factory,
)
from multisink.levels import Level


class TestScenario:
    @pytest.mark.asyncio
    async def test_json_and_uniform_text_targets(self, clock, defaults, make_collector) -> None:
        """Name width comes from every logger created before the call."""
        json_lines, text_lines = make_collector(), make_collector()
        factory = await create_logger_factory(
            [
                {"type": "FUNCTION", "function": json_lines, "style": "JSON", "logLevel": "ERROR"},
                {"type": "FUNCTION", "function": text_lines, "style": "TEXT", "uniformLength": True},
            ],
            clock=clock,
            defaults=defaults,
        )
        svc = factory.create_logger("svc")
        svc2 = factory.create_logger("svc2")

        await svc.info("x")
        await svc2.warn("y", "z")
        await svc.error("boom")

        assert text_lines.lines == [
            "[22:13:20.123] [INFO]  [svc ] x",
            "[22:13:20.123] [WARN]  [svc2] y z",
            "[22:13:20.123] [ERROR] [svc ] boom",
        ]
        assert len(json_lines.lines) == 1
        record = json.loads(json_lines.lines[0])
        assert record["msg"] == ["boom"]
        assert record["component"] == "svc"
        assert record["level"] == "ERROR"


class TestCreateLogger:
    @pytest.mark.asyncio
    async def test_max_name_length_only_grows(self, defaults) -> None:
        factory = await create_logger_factory({"type": "STDOUT"}, defaults=defaults)
        assert isinstance(factory, LoggerFactory)
        assert factory.max_name_length == 0
        factory.create_logger("a")
        assert factory.max_name_length == 1
        factory.create_logger("abcd")
        factory.create_logger("ab")
        assert factory.max_name_length == 4
        factory.create_logger("abc", "de")
        assert factory.max_name_length == 6

    @pytest.mark.asyncio
    async def test_invalid_color_leaves_factory_unchanged(self, defaults) -> None:
        factory = await create_logger_factory({"type": "STDOUT"}, defaults=defaults)
        factory.create_logger("svc")
        with pytest.raises(InvalidColorError):
            factory.create_logger("a-much-longer-name", color=[256, 0, 206])
        assert factory.max_name_length == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("component, source", [("", None), (None, None), (42, None), ("svc", 7)])
    async def test_invalid_names(self, defaults, component, source) -> None:
        factory = await create_logger_factory({"type": "STDOUT"}, defaults=defaults)
        with pytest.raises(ConfigurationError) as exc_info:
            factory.create_logger(component, source)
        assert exc_info.value.code == "INVALID_LOGGER"

    @pytest.mark.asyncio
    async def test_logger_attributes(self, defaults) -> None:
        factory = await create_logger_factory({"type": "STDOUT"}, defaults=defaults)
        log = factory.create_logger("db", "pool", color="#26E2D0")
        assert log.display_name == "db/pool"
        assert log.factory is factory
        assert log.color("x") == "\x1b[38;2;38;226;208mx\x1b[39m"
        assert repr(log) == "Logger('db/pool', destroyed=False)"

    @pytest.mark.asyncio
    async def test_empty_source_is_no_source(self, defaults) -> None:
        factory = await create_logger_factory({"type": "STDOUT"}, defaults=defaults)
        assert factory.create_logger("svc", "").display_name == "svc"


class TestLogging:
    @pytest.mark.asyncio
    async def test_level_methods_return_tasks(self, clock, defaults, collector) -> None:
        factory = await create_logger_factory({"type": "FUNCTION", "function": collector}, clock=clock, defaults=defaults)
        log = factory.create_logger("svc")
        tasks = [log.trace("t"), log.debug("d"), log.info("i"), log.warn("w"), log.error("e"), log.fatal("f")]
        assert all(isinstance(task, asyncio.Task) for task in tasks)
        await asyncio.gather(*tasks)
        assert [line.split("] [")[1].split("]")[0] for line in collector.lines] == [
            "TRACE",
            "DEBUG",
            "INFO",
            "WARN",
            "ERROR",
            "FATAL",
        ]

    @pytest.mark.asyncio
    async def test_emit_and_log_by_name(self, clock, defaults, collector) -> None:
        factory = await create_logger_factory({"type": "FUNCTION", "function": collector}, clock=clock, defaults=defaults)
        log = factory.create_logger("svc")
        assert await log.emit("WARN", "a") == [None]
        await log.log(Level.ERROR, "b")
        assert collector.lines == ["[22:13:20.123] [WARN] [svc] a", "[22:13:20.123] [ERROR] [svc] b"]

    @pytest.mark.asyncio
    async def test_flush_waits_for_fire_and_forget_calls(self, defaults, make_failing) -> None:
        delivered: list[str] = []

        async def deliver(payload: str) -> None:
            await asyncio.sleep(0.01)
            delivered.append(payload)

        factory = await create_logger_factory(
            [
                {"type": "FUNCTION", "function": deliver},
                {"type": "FUNCTION", "function": make_failing(), "errorPolicy": "THROW"},
            ],
            defaults=defaults,
        )
        log = factory.create_logger("svc")
        for i in range(5):
            log.info(i)
        await factory.flush()
        assert len(delivered) == 5

    def test_level_methods_need_a_running_loop(self, defaults) -> None:
        factory = asyncio.run(create_logger_factory({"type": "FUNCTION", "function": print}, defaults=defaults))
        log = factory.create_logger("svc")
        with pytest.raises(RuntimeError):
            log.info("x")

    @pytest.mark.asyncio
    async def test_stdout_target(self, clock, defaults, capsys) -> None:
        factory = await create_logger_factory({"type": "STDOUT"}, clock=clock, defaults=defaults)
        await factory.create_logger("svc").info("hi", {"n": 1})
        assert capsys.readouterr().out == "[22:13:20.123] [INFO] [svc] hi {'n': 1}\n"


class TestDestroy:
    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self, defaults) -> None:
        factory = await create_logger_factory({"type": "STDOUT"}, defaults=defaults)
        factory.destroy()
        factory.destroy()
        assert factory.destroyed
        assert factory.targets == ()

    @pytest.mark.asyncio
    async def test_use_after_destroy_raises_synchronously(self, defaults) -> None:
        factory = await create_logger_factory({"type": "STDOUT"}, defaults=defaults)
        log = factory.create_logger("svc")
        factory.destroy()

        assert log.destroyed
        with pytest.raises(FactoryDestroyedError, match="Logger has been destroyed"):
            log.info("x")
        with pytest.raises(FactoryDestroyedError):
            await log.emit("INFO", "x")
        with pytest.raises(FactoryDestroyedError, match="LoggerFactory has been destroyed"):
            factory.create_logger("svc")

    @pytest.mark.asyncio
    async def test_owned_sinks_are_closed(self, defaults, tmp_path) -> None:
        stream = io.BytesIO()
        factory = await create_logger_factory(
            [{"type": "FILE", "path": str(tmp_path / "app.log")}, {"type": "STREAM", "stream": stream}],
            defaults=defaults,
        )
        file_target = factory.targets[0]
        factory.destroy()
        assert file_target.sink.closed
        assert not stream.closed

    @pytest.mark.asyncio
    async def test_async_context_manager(self, defaults, collector) -> None:
        async with await create_logger_factory({"type": "FUNCTION", "function": collector}, defaults=defaults) as factory:
            factory.create_logger("svc").info("x")
        assert factory.destroyed
        assert len(collector.lines) == 1

    @pytest.mark.asyncio
    async def test_aclose(self, defaults, collector) -> None:
        factory = await create_logger_factory({"type": "FUNCTION", "function": collector}, defaults=defaults)
        factory.create_logger("svc").warn("x")
        await factory.aclose()
        assert factory.destroyed
        assert len(collector.lines) == 1


class TestFileTargets:
    @pytest.mark.asyncio
    async def test_json_file_lines_parse(self, clock, defaults, tmp_path) -> None:
        path = tmp_path / "logs" / "json.log"
        factory = await create_logger_factory(
            {"type": "FILE", "path": str(path), "style": "JSON"}, clock=clock, defaults=defaults
        )
        log = factory.create_logger("source", "sub")

        circ: dict = {"a": [{"b": [None]}, None]}
        circ["a"][0]["b"][0] = circ["a"][0]
        circ["a"][1] = circ["a"][0]["b"]

        await log.trace("trace")
        await log.debug("debug", {"n": 1})
        await log.info("multi\nline")
        await log.warn("circular", circ)
        await log.error(ValueError("bad"))
        await log.fatal("fatal", None)
        await factory.aclose()

        records = [json.loads(line) for line in path.read_text().splitlines()]
        assert [record["level"] for record in records] == ["TRACE", "DEBUG", "INFO", "WARN", "ERROR", "FATAL"]
        assert records[2]["msg"] == ["multi\nline"]
        assert records[3]["msg"][1] == {"a": [{"b": ["[Circular]"]}, "[Circular]"]}
        assert records[4]["msg"][0]["name"] == "ValueError"

    @pytest.mark.asyncio
    async def test_text_file_with_full_timestamps(self, defaults, tmp_path) -> None:
        path = tmp_path / "text.log"
        factory = await create_logger_factory(
            {"type": "FILE", "path": str(path), "fullTimestamps": True, "logLevel": "WARN"}, defaults=defaults
        )
        log = factory.create_logger("source", "sub")
        await log.info("skipped")
        await log.warn("warned", {"nested": {"list": list(range(30))}})
        await log.error(RuntimeError("failed"))
        await log.fatal("fatal")
        await factory.aclose()

        lines = path.read_text().splitlines()
        pattern = re.compile(r"^\[\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z\] \[(WARN|ERROR|FATAL)\] \[source/sub\] .*$")
        assert len(lines) >= 3
        assert all(pattern.match(line) for line in lines)
        assert "skipped" not in path.read_text()

    @pytest.mark.asyncio
    async def test_fail_if_exists(self, defaults, tmp_path) -> None:
        path = tmp_path / "exists.log"
        path.write_text("")
        with pytest.raises(FatalTargetError):
            await create_logger_factory({"type": "FILE", "path": str(path), "failIfExists": True}, defaults=defaults)

    @pytest.mark.asyncio
    async def test_invalid_descriptor_in_list(self, defaults) -> None:
        with pytest.raises(InvalidTargetError, match="Invalid target type: NOPE"):
            await create_logger_factory([{"type": "STDOUT"}, {"type": "NOPE"}], defaults=defaults)
