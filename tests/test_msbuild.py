"""Tests for the Visual Studio solution host."""

from __future__ import annotations

import os

import pytest

from covstart.config import BuildContext, SelectionKind
from covstart.errors import MalformedProjectError, SolutionLoadError
from covstart.model import NativeProjectNode, OtherProjectNode, SolutionFolderNode
from covstart.msbuild.host import SolutionHost, VcxProject
from covstart.msbuild.macros import MacroEvaluator, apply_property_layer, default_properties
from covstart.msbuild.project import parse_vcxproj
from covstart.msbuild.solution import parse_solution, parse_solution_text
from covstart.phases.flatten import flatten_projects
from covstart.pipeline import resolve_startup_config

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")
SOLUTION_DIR = os.path.abspath(os.path.join(FIXTURES_DIR, "native_solution"))
SLN_PATH = os.path.join(SOLUTION_DIR, "Native.sln")

FOLDER = "2150E333-8FDC-42A3-9474-1A3956D46DE8"
VC = "8BC9CEB8-8B4A-11D0-8D11-00A0C91BC942"


def _in_solution(*parts: str) -> str:
    return os.path.join(SOLUTION_DIR, *parts)


class TestSolutionParser:
    def test_parse_sln(self):
        solution = parse_solution(SLN_PATH)

        names = [p.name for p in solution.projects]
        assert names == ["App", "Libraries", "Core", "Nested", "Util", "Managed", "Tests", "Broken"]

    def test_sln_project_paths(self):
        solution = parse_solution(SLN_PATH)
        paths = {p.name: p.path for p in solution.projects}
        assert paths["App"] == "App/App.vcxproj"
        assert paths["Util"] == "Libs/Util/Util.vcxproj"

    def test_solution_folders(self):
        solution = parse_solution(SLN_PATH)
        folders = [p.name for p in solution.projects if p.is_solution_folder]
        assert folders == ["Libraries", "Nested"]

    def test_solution_configurations(self):
        solution = parse_solution(SLN_PATH)
        assert solution.solution_configurations == ["Debug|x64", "Release|x64", "Debug|x86"]

    def test_project_configurations(self):
        solution = parse_solution(SLN_PATH)
        rows = {
            (r.project_guid, r.solution_configuration): r
            for r in solution.project_configurations
        }

        app_x86 = rows[("11111111-1111-1111-1111-111111111111", "Debug|x86")]
        assert (app_x86.configuration_name, app_x86.platform_name) == ("Debug", "Win32")
        assert app_x86.should_build

        tests = rows[("55555555-5555-5555-5555-555555555555", "Debug|x64")]
        assert not tests.should_build

        managed = rows[("44444444-4444-4444-4444-444444444444", "Debug|x64")]
        assert managed.platform_name == "Any CPU"

    def test_nested_projects(self):
        solution = parse_solution(SLN_PATH)
        assert ("33333333-3333-3333-3333-333333333333", "BBBBBBBB-BBBB-BBBB-BBBB-BBBBBBBBBBBB") \
            in solution.nested_projects
        assert len(solution.nested_projects) == 4

    def test_parse_nonexistent_sln(self):
        with pytest.raises(SolutionLoadError):
            parse_solution("/nonexistent/Missing.sln")

    def test_lowercase_guids_are_normalised(self):
        solution = parse_solution_text(
            f'Project("{{{VC.lower()}}}") = "P", "P\\P.vcxproj", "{{abcdef00-0000-0000-0000-000000000000}}"\n'
            "EndProject\n"
        )
        assert solution.projects[0].type_guid == VC
        assert solution.projects[0].project_guid == "ABCDEF00-0000-0000-0000-000000000000"


class TestProjectParser:
    def test_configurations(self):
        info = parse_vcxproj(_in_solution("App", "App.vcxproj"))
        assert info.configurations == [("Debug", "Win32"), ("Debug", "x64"), ("Release", "x64")]

    def test_source_files(self):
        info = parse_vcxproj(_in_solution("App", "App.vcxproj"))
        assert info.files == [
            _in_solution("App", "src", "main.cpp"),
            _in_solution("App", "src", "app", "window.cpp"),
            _in_solution("App", "include", "app.h"),
        ]

    def test_duplicate_items_are_listed_once(self):
        info = parse_vcxproj(_in_solution("Libs", "Core", "Core.vcxproj"))
        assert len(info.files) == 3

    def test_properties(self):
        info = parse_vcxproj(_in_solution("App", "App.vcxproj"))

        assert info.project_name == "App"
        assert info.global_properties["TargetName"] == "app"
        assert info.configuration_properties[("Debug", "x64")]["ConfigurationType"] == "Application"
        assert "OutDir" not in info.configuration_properties[("Debug", "Win32")]

    def test_user_file_overrides(self):
        info = parse_vcxproj(_in_solution("App", "App.vcxproj"))

        debug = info.properties_for("Debug", "x64")
        assert debug["LocalDebuggerCommandArguments"] == "--run"
        assert debug["LocalDebuggerEnvironment"] == "FOO=bar\nBAD_LINE\nMODE=$(Configuration)"
        assert info.properties_for("Release", "x64")["LocalDebuggerCommandArguments"] == "--run --fast"
        assert "LocalDebuggerCommandArguments" not in info.properties_for("Debug", "Win32")

    def test_missing_project(self):
        with pytest.raises(MalformedProjectError):
            parse_vcxproj(_in_solution("Broken", "Broken.vcxproj"))

    def test_invalid_xml(self, tmp_path):
        path = tmp_path / "Bad.vcxproj"
        path.write_text("<Project><ItemGroup>")
        with pytest.raises(MalformedProjectError):
            parse_vcxproj(str(path))

    def test_broken_user_file_is_ignored(self, tmp_path):
        path = tmp_path / "P.vcxproj"
        path.write_text(
            "<Project><ItemGroup><ProjectConfiguration Include=\"Debug|x64\" /></ItemGroup></Project>"
        )
        (tmp_path / "P.vcxproj.user").write_text("<Project>")

        info = parse_vcxproj(str(path))
        assert info.configurations == [("Debug", "x64")]
        assert info.user_properties == {}

    def test_property_level_condition(self, tmp_path):
        path = tmp_path / "P.vcxproj"
        path.write_text(
            "<Project>"
            "<PropertyGroup>"
            "<OutDir Condition=\"'$(Configuration)|$(Platform)'=='Release|x64'\">out\\</OutDir>"
            "<OutDir Condition=\"'$(Foo)'=='bar'\">ignored\\</OutDir>"
            "</PropertyGroup>"
            "</Project>"
        )
        info = parse_vcxproj(str(path))
        assert info.configuration_properties == {("Release", "x64"): {"OutDir": "out\\"}}
        assert info.global_properties == {}


class TestMacroEvaluator:
    def test_expands_nested_properties(self):
        evaluator = MacroEvaluator(
            {"OutDir": "bin\\$(Configuration)\\", "Configuration": "Debug", "Target": "$(OutDir)a.exe"},
            environ={},
        )
        assert evaluator.evaluate("$(Target)") == "bin\\Debug\\a.exe"

    def test_names_are_case_insensitive(self):
        evaluator = MacroEvaluator({"Platform": "x64"}, environ={})
        assert evaluator.evaluate("$(PLATFORM)-$(platform)") == "x64-x64"

    def test_unknown_property_falls_back_to_environment(self):
        evaluator = MacroEvaluator({}, environ={"HOME_DIR": "/home/me"})
        assert evaluator.evaluate("$(HOME_DIR)/x $(Missing)") == "/home/me/x "

    def test_recursive_reference_expands_to_empty(self):
        evaluator = MacroEvaluator({"A": "a$(B)", "B": "b$(A)"}, environ={})
        assert evaluator.evaluate("$(A)") == "ab"

    def test_deep_nesting_stops_with_warning(self, caplog):
        chain = {f"P{i}": f"$(P{i + 1})" for i in range(400)}
        chain["P400"] = "end"
        evaluator = MacroEvaluator(chain, environ={})

        assert evaluator.evaluate("$(P0)") == ""
        assert "nested deeper than" in caplog.text

    def test_short_chain_expands_fully(self):
        chain = {f"P{i}": f"$(P{i + 1})" for i in range(10)}
        chain["P10"] = "end"
        evaluator = MacroEvaluator(chain, environ={})
        assert evaluator.evaluate("$(P0)") == "end"

    def test_layer_self_reference_sees_lower_value(self):
        properties = {"LocalDebuggerEnvironment": "A=1", "Platform": "x64"}
        apply_property_layer(
            properties,
            {"localdebuggerenvironment": "B=2\n$(LocalDebuggerEnvironment)"},
            environ={},
        )
        assert properties == {"Platform": "x64", "localdebuggerenvironment": "B=2\nA=1"}

    def test_layer_self_reference_falls_back_to_environment(self):
        properties = {}
        apply_property_layer(properties, {"Path": "$(Path);C:\\tools"}, environ={"PATH": "C:\\bin"})
        assert properties == {"Path": "C:\\bin;C:\\tools"}

    def test_layer_keeps_other_references_unexpanded(self):
        properties = {"OutDir": "bin\\"}
        apply_property_layer(properties, {"TargetPath": "$(OutDir)a.exe"}, environ={})
        assert properties["TargetPath"] == "$(OutDir)a.exe"

    def test_text_without_macros(self):
        evaluator = MacroEvaluator({}, environ={})
        assert evaluator.evaluate("plain $ text") == "plain $ text"
        assert evaluator.evaluate("") == ""

    def test_default_target_path(self):
        properties = default_properties(
            "/s/Lib/Lib.vcxproj", "/s/All.sln", "Release", "x64", "DynamicLibrary"
        )
        evaluator = MacroEvaluator(properties, environ={})
        assert evaluator.evaluate("$(TargetPath)") == "/s/x64\\Release\\Lib.dll"
        assert evaluator.evaluate("$(LocalDebuggerWorkingDirectory)") == "/s/Lib/"

    def test_default_win32_out_dir(self):
        properties = default_properties("/s/App/App.vcxproj", "/s/All.sln", "Debug", "Win32")
        evaluator = MacroEvaluator(properties, environ={})
        assert evaluator.evaluate("$(TargetPath)") == "/s/Debug\\App.exe"


class TestSolutionHost:
    def test_project_tree(self):
        host = SolutionHost.load(SLN_PATH)
        roots = host.project_tree()

        assert [r.name for r in roots] == ["App", "Libraries", "Tests", "Broken"]
        libraries = roots[1]
        assert isinstance(libraries, SolutionFolderNode)
        assert [c.name for c in libraries.children] == ["Core", "Nested"]
        nested = libraries.children[1]
        assert isinstance(nested.children[0], NativeProjectNode)
        assert isinstance(nested.children[1], OtherProjectNode)

    def test_flattened_projects(self):
        host = SolutionHost.load(SLN_PATH)
        projects = flatten_projects(host.project_tree())
        assert [p.unique_name for p in projects] == [
            "App/App.vcxproj",
            "Libs/Core/Core.vcxproj",
            "Libs/Util/Util.vcxproj",
            "Tests/Tests.vcxproj",
        ]
        assert projects[0].path == _in_solution("App", "App.vcxproj")

    def test_nesting_cycle_is_broken(self):
        solution = parse_solution_text(
            f'Project("{{{FOLDER}}}") = "F1", "F1", "{{AAAAAAAA-0000-0000-0000-000000000000}}"\nEndProject\n'
            f'Project("{{{FOLDER}}}") = "F2", "F2", "{{BBBBBBBB-0000-0000-0000-000000000000}}"\nEndProject\n'
            f'Project("{{{VC}}}") = "P", "P\\P.vcxproj", "{{CCCCCCCC-0000-0000-0000-000000000000}}"\nEndProject\n'
            "Global\n"
            "\tGlobalSection(NestedProjects) = preSolution\n"
            "\t\t{BBBBBBBB-0000-0000-0000-000000000000} = {AAAAAAAA-0000-0000-0000-000000000000}\n"
            "\t\t{AAAAAAAA-0000-0000-0000-000000000000} = {BBBBBBBB-0000-0000-0000-000000000000}\n"
            "\t\t{CCCCCCCC-0000-0000-0000-000000000000} = {BBBBBBBB-0000-0000-0000-000000000000}\n"
            "\tEndGlobalSection\n"
            "EndGlobal\n",
            "/s/Cycle.sln",
        )
        roots = SolutionHost(solution).project_tree()

        assert [r.name for r in roots] == ["F1"]
        assert [c.name for c in roots[0].children] == ["F2"]
        assert [c.name for c in roots[0].children[0].children] == ["P"]

    def test_build_contexts(self):
        host = SolutionHost.load(SLN_PATH)
        contexts = host.build_contexts("Debug|x86")

        assert BuildContext("App/App.vcxproj", "Debug", "Win32", True) in contexts
        assert BuildContext("Libs/Util/Util.vcxproj", "Debug", "x64", False) in contexts
        assert len(contexts) == 5

    def test_unknown_configuration_has_no_contexts(self):
        host = SolutionHost.load(SLN_PATH)
        assert host.build_contexts("Profile|ARM64") == []

    def test_active_configuration_and_default_startup(self):
        host = SolutionHost.load(SLN_PATH)
        assert host.active_configuration == "Debug|x64"
        assert host.default_startup_names() == {"App/App.vcxproj"}

    def test_no_native_project_means_no_default_startup(self):
        solution = parse_solution_text(
            'Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "M", "M\\M.csproj", '
            '"{44444444-4444-4444-4444-444444444444}"\nEndProject\n'
        )
        host = SolutionHost(solution)
        assert host.default_startup_names() is None
        assert host.active_configuration == ""

    def test_user_environment_extends_project_environment(self, tmp_path, caplog):
        debug_x64 = "Condition=\"'$(Configuration)|$(Platform)'=='Debug|x64'\""
        path = tmp_path / "P.vcxproj"
        path.write_text(
            "<Project>"
            "<ItemGroup><ProjectConfiguration Include=\"Debug|x64\" /></ItemGroup>"
            f"<PropertyGroup {debug_x64}><LocalDebuggerEnvironment>A=1</LocalDebuggerEnvironment></PropertyGroup>"
            "</Project>"
        )
        (tmp_path / "P.vcxproj.user").write_text(
            "<Project>"
            f"<PropertyGroup {debug_x64}>"
            "<LocalDebuggerEnvironment>B=2\n$(LocalDebuggerEnvironment)</LocalDebuggerEnvironment>"
            "</PropertyGroup>"
            "</Project>"
        )
        project = VcxProject("P.vcxproj", str(path), str(tmp_path / "All.sln"))

        entry = project.configurations[0]
        assert entry.evaluate("$(LocalDebuggerEnvironment)") == "B=2\nA=1"
        assert "Recursive property reference" not in caplog.text


def _resolve(configuration: str, kind=SelectionKind.STARTUP_PROJECTS, selected=None):
    host = SolutionHost.load(SLN_PATH)
    return resolve_startup_config(
        host.project_tree(),
        configuration,
        host.build_contexts(configuration),
        kind,
        declared_startup_names=host.default_startup_names(),
        selected_projects=selected,
    )


class TestResolveNativeSolution:
    def test_debug_settings(self):
        result = _resolve("Debug|x64")

        assert result.project_name == "App/App.vcxproj"
        assert result.project_path == _in_solution("App", "App.vcxproj")
        assert result.command == SOLUTION_DIR + os.sep + "bin\\x64\\Debug\\app.exe"
        assert result.arguments == "--run"
        assert result.working_dir == _in_solution("App") + os.sep + "data"
        assert result.environment_variables == [("FOO", "bar"), ("MODE", "Debug")]
        assert result.solution_configuration_name == "Debug|x64"

    def test_cpp_projects(self):
        result = _resolve("Debug|x64")

        assert [p.path for p in result.cpp_projects] == [
            "App/App.vcxproj",
            "Libs/Core/Core.vcxproj",
            "Libs/Util/Util.vcxproj",
        ]
        app, core, util = result.cpp_projects
        assert app.module_path == result.command
        assert app.source_paths == {_in_solution("App", "src"), _in_solution("App", "include")}
        assert core.module_path == SOLUTION_DIR + os.sep + "x64\\Debug\\Core.lib"
        assert core.source_paths == {_in_solution("Libs", "Core")}
        assert util.module_path == SOLUTION_DIR + os.sep + "x64\\Debug\\Util.dll"
        assert util.source_paths == {_in_solution("Libs", "Util")}

    def test_release_defaults(self):
        result = _resolve("Release|x64")

        assert result.arguments == "--run --fast"
        assert result.working_dir == _in_solution("App") + os.sep
        assert result.environment_variables == []
        assert [p.path for p in result.cpp_projects] == ["App/App.vcxproj", "Libs/Core/Core.vcxproj"]

    def test_win32_configuration(self):
        result = _resolve("Debug|x86")

        assert result.command == SOLUTION_DIR + os.sep + "Debug\\app.exe"
        assert result.arguments == ""
        # Core builds as Debug|Win32, which Core.vcxproj does not define
        assert [p.path for p in result.cpp_projects] == ["App/App.vcxproj"]

    def test_selected_project(self):
        result = _resolve(
            "Debug|x64", SelectionKind.SELECTED_PROJECT, selected=["Libs/Util/Util.vcxproj"]
        )
        assert result.project_name == "Libs/Util/Util.vcxproj"
        assert result.command == SOLUTION_DIR + os.sep + "x64\\Debug\\Util.dll"

    def test_selected_project_not_building(self):
        result = _resolve("Debug|x64", SelectionKind.SELECTED_PROJECT, selected=["Tests/Tests.vcxproj"])
        assert result.is_empty
