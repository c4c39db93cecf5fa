# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

from tokport.cli import main

SAMPLE_MACROS = "tokport.tests.support.sample_macros"


def _workspace(tmp_path: Path, lib_rs: str, **manifest_extra) -> Path:
	src = tmp_path / "app" / "src"
	src.mkdir(parents=True)
	(src / "lib.rs").write_text(lib_rs)
	(src / "first_mod.rs").write_text("#[export_tokens] struct MyStruct { field1: usize }\n")
	manifest = tmp_path / "tokport.json"
	payload = {"crates": {"app": "app/src/lib.rs"}, "macros": {"my_macros": SAMPLE_MACROS}}
	payload.update(manifest_extra)
	manifest.write_text(json.dumps(payload))
	return manifest


GOOD = "mod first_mod;\nmy_macros::render_as_const!(first_mod::MyStruct);\n"
BAD = "mod first_mod;\nmy_macros::render_as_const!(first_mod::Missing);\n"


def _run_json(capsys, argv: list[str]) -> tuple[int, dict]:
	exit_code = main(argv + ["--json"])
	out = capsys.readouterr().out
	return exit_code, json.loads(out)


def test_expand_json_success(tmp_path: Path, capsys) -> None:
	manifest = _workspace(tmp_path, GOOD)
	exit_code, payload = _run_json(capsys, ["expand", str(manifest)])
	assert exit_code == 0
	assert payload["exit_code"] == 0
	assert payload["diagnostics"] == []
	lib = payload["crates"]["app"]["lib.rs"]
	assert "MY_STRUCT_TEXT" in lib
	assert "render_as_const" not in lib
	assert "first_mod.rs" in payload["crates"]["app"]


def test_expand_json_reports_failures(tmp_path: Path, capsys) -> None:
	manifest = _workspace(tmp_path, BAD)
	exit_code, payload = _run_json(capsys, ["expand", str(manifest)])
	assert exit_code == 1
	assert payload["exit_code"] == 1
	[diag] = payload["diagnostics"]
	assert diag["code"] == "PathResolutionError"
	assert diag["phase"] == "forward"
	assert diag["file"].endswith("lib.rs")
	assert diag["line"] == 2
	assert "compile_error" in payload["crates"]["app"]["lib.rs"]


def test_expand_writes_files(tmp_path: Path, capsys) -> None:
	manifest = _workspace(tmp_path, GOOD)
	out_dir = tmp_path / "out"
	assert main(["expand", str(manifest), "--out", str(out_dir)]) == 0
	assert (out_dir / "app" / "lib.rs").read_text().count("MY_STRUCT_TEXT") == 1
	assert (out_dir / "app" / "first_mod.rs").exists()
	assert capsys.readouterr().out == ""


def test_expand_human_output(tmp_path: Path, capsys) -> None:
	manifest = _workspace(tmp_path, BAD)
	assert main(["expand", str(manifest)]) == 1
	captured = capsys.readouterr()
	assert "// app/lib.rs" in captured.out
	assert "error: [PathResolutionError]" in captured.err
	assert "note: looked for `__export_tokens_tt_missing`" in captured.err


def test_exports(tmp_path: Path, capsys) -> None:
	manifest = _workspace(tmp_path, GOOD)
	exit_code, payload = _run_json(capsys, ["exports", str(manifest)])
	assert exit_code == 0
	assert payload["exports"] == [
		{
			"crate": "app",
			"module": "first_mod",
			"ident": "MyStruct",
			"export_name": "__export_tokens_tt_my_struct",
			"kind": "struct",
			"emit": True,
		}
	]
	assert main(["exports", str(manifest)]) == 0
	assert "app::first_mod::MyStruct\t__export_tokens_tt_my_struct\tstruct" in capsys.readouterr().out


def test_resolve(tmp_path: Path, capsys) -> None:
	manifest = _workspace(tmp_path, GOOD)
	assert main(["resolve", str(manifest), "crate::MyStruct"]) == 0
	assert capsys.readouterr().out == "struct MyStruct { field1 : usize, }\n"
	exit_code, payload = _run_json(capsys, ["resolve", str(manifest), "MyStruct", "--module", "first_mod"])
	assert exit_code == 0
	assert payload["resolved"] == "app::first_mod::MyStruct"
	assert payload["export_name"] == "__export_tokens_tt_my_struct"


def test_resolve_failure(tmp_path: Path, capsys) -> None:
	manifest = _workspace(tmp_path, GOOD)
	exit_code, payload = _run_json(capsys, ["resolve", str(manifest), "crate::Nope"])
	assert exit_code == 1
	assert [d["code"] for d in payload["diagnostics"]] == ["PathResolutionError"]
	exit_code, payload = _run_json(capsys, ["resolve", str(manifest), "crate::MyStruct", "--crate", "other"])
	assert exit_code == 1
	assert payload["diagnostics"][0]["code"] == "ConfigError"


def test_config_errors_become_diagnostics(tmp_path: Path, capsys) -> None:
	exit_code, payload = _run_json(capsys, ["expand", str(tmp_path / "missing.json")])
	assert exit_code == 1
	[diag] = payload["diagnostics"]
	assert diag["code"] == "ConfigError"
	assert diag["file"].endswith("missing.json")

	manifest = _workspace(tmp_path, GOOD, macros={"my_macros": "no_such_module_for_tokport"})
	exit_code, payload = _run_json(capsys, ["expand", str(manifest)])
	assert exit_code == 1
	assert "cannot import" in payload["diagnostics"][0]["message"]


def test_macro_package_from_python_path(tmp_path: Path, capsys) -> None:
	macros = tmp_path / "macros"
	macros.mkdir()
	(macros / "cli_local_macros.py").write_text(
		"from tokport import proc_macro\n"
		"\n"
		"@proc_macro\n"
		"def shout(tokens):\n"
		"    return 'const SHOUT: &str = \"' + tokens.to_string().upper() + '\";'\n"
	)
	manifest = _workspace(
		tmp_path,
		"local::shout!(quiet words);\n",
		python_path=["macros"],
		macros={"local": "cli_local_macros"},
	)
	exit_code, payload = _run_json(capsys, ["expand", str(manifest)])
	assert exit_code == 0
	assert '"QUIET WORDS"' in payload["crates"]["app"]["lib.rs"]


def test_bad_importer_signature_is_reported(tmp_path: Path, capsys) -> None:
	macros = tmp_path / "macros"
	macros.mkdir()
	(macros / "cli_bad_signature.py").write_text(
		"from tokport import import_tokens_attr\n"
		"\n"
		"@import_tokens_attr\n"
		"def only_one(tokens):\n"
		"    return tokens\n"
	)
	manifest = _workspace(tmp_path, GOOD, python_path=["macros"], macros={"bad": "cli_bad_signature"})
	exit_code, payload = _run_json(capsys, ["expand", str(manifest)])
	assert exit_code == 1
	[diag] = payload["diagnostics"]
	assert diag["code"] == "ImportSignatureError"
	assert diag["file"].endswith("cli_bad_signature.py")
	assert diag["line"] == 3
