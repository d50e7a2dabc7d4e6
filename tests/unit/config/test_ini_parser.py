"""
Unit tests for jbuild.ini parser.
"""

import pytest
from pathlib import Path

from jbuild.config import ProjectConfig, ProjectConfigError, SourceRole
from jbuild.config.ini_parser import split_list


class TestProjectConfig:
    """Test suite for ProjectConfig parser."""

    @pytest.fixture
    def tmp_ini_path(self, tmp_path):
        """Fixture to provide a temporary INI file path."""
        return tmp_path / "jbuild.ini"

    @pytest.fixture
    def minimal_config(self, tmp_ini_path):
        """Create minimal valid jbuild.ini."""
        tmp_ini_path.write_text("[project]\nname = demo\n")
        return tmp_ini_path

    @pytest.fixture
    def full_config(self, tmp_ini_path):
        """Create a config exercising every section."""
        content = """
[project]
name = demo
source_dirs =
    src/main/java
    target/generated-sources
test_source_dirs = src/test/java
build_dir = out
classpath =
    lib/commons-lang3.jar
    lib/guava.jar
test_classpath =
    lib/junit.jar

[compiler]
release = 17
encoding = UTF-8
args =
    -Xlint:all
    -Werror
proc = none
timeout = 120
max_command_line = 4000

[compile]
excludes =
    **/Experimental*.java
fork = true
executable = /opt/jdk/bin/javac

[testCompile]
skip = yes
fail_on_error = false
"""
        tmp_ini_path.write_text(content)
        return tmp_ini_path

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProjectConfigError, match="Configuration file not found"):
            ProjectConfig(tmp_path / "jbuild.ini")

    def test_malformed_file(self, tmp_ini_path):
        tmp_ini_path.write_text("no section header\n")

        with pytest.raises(ProjectConfigError, match="Failed to parse"):
            ProjectConfig(tmp_ini_path)

    def test_from_project_dir(self, minimal_config, tmp_path):
        config = ProjectConfig.from_project_dir(tmp_path)

        assert config.ini_path == minimal_config
        assert config.name == "demo"

    def test_name_defaults_to_directory(self, tmp_ini_path, tmp_path):
        tmp_ini_path.write_text("[compiler]\nrelease = 17\n")

        assert ProjectConfig(tmp_ini_path).name == tmp_path.name

    def test_default_directories(self, minimal_config, tmp_path):
        directories = ProjectConfig(minimal_config).build_directories

        assert directories.build_dir == tmp_path / "target"
        assert directories.output_dir == tmp_path / "target" / "classes"
        assert directories.test_output_dir == tmp_path / "target" / "test-classes"

    def test_minimal_main_configuration(self, minimal_config, tmp_path):
        main = ProjectConfig(minimal_config).main_configuration()

        assert main.role is SourceRole.MAIN
        assert main.source_roots == [tmp_path / "src" / "main" / "java"]
        assert main.destination_dir == tmp_path / "target" / "classes"
        assert main.classpath == []
        assert main.working_dir == tmp_path
        assert main.release is None
        assert main.fail_on_error is True

    def test_minimal_test_configuration(self, minimal_config, tmp_path):
        test = ProjectConfig(minimal_config).test_configuration()

        assert test.role is SourceRole.TEST
        assert test.source_roots == [tmp_path / "src" / "test" / "java"]
        assert test.destination_dir == tmp_path / "target" / "test-classes"
        assert test.classpath == [tmp_path / "target" / "classes"]

    def test_full_main_configuration(self, full_config, tmp_path):
        main = ProjectConfig(full_config).main_configuration()

        assert main.source_roots == [tmp_path / "src" / "main" / "java", tmp_path / "target" / "generated-sources"]
        assert main.destination_dir == tmp_path / "out" / "classes"
        assert main.classpath == [tmp_path / "lib" / "commons-lang3.jar", tmp_path / "lib" / "guava.jar"]
        assert main.release == "17"
        assert main.encoding == "UTF-8"
        assert main.compiler_args == ["-Xlint:all", "-Werror"]
        assert main.annotation_processing is False
        assert main.timeout == 120.0
        assert main.max_command_line == 4000
        assert main.excludes == ["**/Experimental*.java"]
        assert main.fork is True
        assert main.executable == Path("/opt/jdk/bin/javac")
        assert main.skip is False

    def test_full_test_configuration(self, full_config, tmp_path):
        test = ProjectConfig(full_config).test_configuration()

        assert test.classpath == [
            tmp_path / "out" / "classes",
            tmp_path / "lib" / "commons-lang3.jar",
            tmp_path / "lib" / "guava.jar",
            tmp_path / "lib" / "junit.jar",
        ]
        assert test.skip is True
        assert test.fail_on_error is False
        # [compiler] applies to both units, [compile] only to main
        assert test.release == "17"
        assert test.excludes == []
        assert test.fork is False

    def test_unit_section_overrides_compiler(self, tmp_ini_path):
        tmp_ini_path.write_text("[compiler]\nrelease = 11\n\n[testCompile]\nrelease = 17\n")
        config = ProjectConfig(tmp_ini_path)

        assert config.main_configuration().release == "11"
        assert config.test_configuration().release == "17"

    def test_aggregate_output(self, tmp_ini_path):
        tmp_ini_path.write_text("[compile]\naggregate_output = true\naggregate_output_name = all.class\n")

        main = ProjectConfig(tmp_ini_path).main_configuration()

        assert main.aggregate_output is True
        assert main.aggregate_output_path.name == "all.class"

    def test_interpolation(self, tmp_ini_path, tmp_path):
        tmp_ini_path.write_text(
            "[project]\nlibs = vendor\nclasspath = ${libs}/a.jar\n"
        )

        main = ProjectConfig(tmp_ini_path).main_configuration()

        assert main.classpath == [tmp_path / "vendor" / "a.jar"]

    def test_annotation_processors(self, tmp_ini_path, tmp_path):
        tmp_ini_path.write_text(
            "[compiler]\nprocessors =\n    org.acme.Proc\nprocessor_path = lib/proc.jar\n"
            "generated_sources_dir = out/generated\n"
        )

        main = ProjectConfig(tmp_ini_path).main_configuration()

        assert main.annotation_processors == ["org.acme.Proc"]
        assert main.processor_path == [tmp_path / "lib" / "proc.jar"]
        assert main.generated_sources_dir == tmp_path / "out" / "generated"

    def test_unknown_option(self, tmp_ini_path):
        tmp_ini_path.write_text("[compiler]\noptimize = true\n")

        with pytest.raises(ProjectConfigError, match="Unknown option"):
            ProjectConfig(tmp_ini_path).main_configuration()

    def test_invalid_boolean(self, tmp_ini_path):
        tmp_ini_path.write_text("[compiler]\nfork = maybe\n")

        with pytest.raises(ProjectConfigError, match="not a boolean"):
            ProjectConfig(tmp_ini_path).main_configuration()

    def test_invalid_number(self, tmp_ini_path):
        tmp_ini_path.write_text("[compiler]\ntimeout = soon\n")

        with pytest.raises(ProjectConfigError, match="not a number"):
            ProjectConfig(tmp_ini_path).main_configuration()

    def test_invalid_proc(self, tmp_ini_path):
        tmp_ini_path.write_text("[compiler]\nproc = only\n")

        with pytest.raises(ProjectConfigError, match="proc"):
            ProjectConfig(tmp_ini_path).main_configuration()

    def test_bad_interpolation(self, tmp_ini_path):
        tmp_ini_path.write_text("[compiler]\nrelease = ${missing}\n")

        with pytest.raises(ProjectConfigError, match="Invalid value"):
            ProjectConfig(tmp_ini_path).main_configuration()


def test_split_list():
    assert split_list("\n  a\n\n  b  \n") == ["a", "b"]
    assert split_list(None) == []
    assert split_list("") == []
