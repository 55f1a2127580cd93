"""
Tests for the seven provisioning phases.

Each phase body runs against a temp home: file mutations are real,
process invocations are recorded by the mock shell.
"""

import logging
from pathlib import Path

import pytest

from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.errors import PhaseError
from devsetup.core.models.action import Receipt
from devsetup.core.models.settings import Application, Settings
from devsetup.core.prompts import ScriptedPrompter
from devsetup.core.services.phases import PHASE_IDS, build_phases
from devsetup.core.services.phases.applications import install_applications
from devsetup.core.services.phases.dotfiles import link_dotfiles
from devsetup.core.services.phases.identity import (
    configure_git,
    configure_identity,
    ensure_ssh_key,
    upload_key_to_github,
)
from devsetup.core.services.phases.prerequisites import (
    ensure_homebrew,
    ensure_xcode_tools,
    install_bundle,
    render_brewfile,
)
from devsetup.core.services.phases.shell import configure_shell, render_zshrc
from devsetup.core.services.phases.shell_profile import add_to_path_file, export_line
from devsetup.core.services.phases.system import configure_system
from devsetup.core.services.phases.toolchains import (
    install_node,
    install_python,
    install_toolchains,
    latest_patch,
)

from tests.helpers import make_context, respond, shell_commands

TOKEN = "ghp_" + "a1" * 18


class TestPhaseList:
    def test_fixed_order(self):
        assert [p.phase_id for p in build_phases()] == list(PHASE_IDS)
        assert PHASE_IDS == (
            "system_prerequisites",
            "git_and_ssh",
            "shell_configuration",
            "dotfiles",
            "development_tools",
            "applications",
            "system_configuration",
        )


# ── system_prerequisites ────────────────────────────────────────────


class TestPrerequisites:
    def test_xcode_present(self, registry, settings, home, shell):
        ensure_xcode_tools(make_context(registry, settings, home))
        assert shell_commands(shell) == [["xcode-select", "-p"]]

    def test_xcode_install_times_out(self, registry, settings, home, shell):
        respond(shell, ["xcode-select", "-p"], fail=True)
        with pytest.raises(PhaseError, match="timed out"):
            ensure_xcode_tools(make_context(registry, settings, home))
        assert ["xcode-select", "--install"] in shell_commands(shell)

    def test_homebrew_present(self, registry, settings, home, shell, all_tools):
        ensure_homebrew(make_context(registry, settings, home))
        assert shell.call_count == 0

    def test_homebrew_installed_from_temp_script(self, registry, settings, home, shell, no_tools):
        ctx = make_context(registry, settings, home)
        ensure_homebrew(ctx)
        script = str(ctx.paths.temp_file("brew_install.sh"))
        commands = shell_commands(shell)
        assert commands[0][:4] == ["curl", "-fsSL", "-o", script]
        assert commands[1] == ["/bin/bash", script]
        assert shell.actions[1].params["interactive"] is True

    def test_default_brewfile_written_when_missing(self, registry, settings, home, shell):
        ctx = make_context(registry, settings, home)
        install_bundle(ctx)

        brewfile = ctx.paths.brewfile
        assert brewfile.read_text() == render_brewfile(settings)
        assert shell_commands(shell) == [
            ["brew", "update"],
            ["brew", "bundle", f"--file={brewfile}"],
        ]

    def test_existing_brewfile_kept(self, registry, settings, home):
        ctx = make_context(registry, settings, home)
        ctx.paths.brewfile.parent.mkdir(parents=True)
        ctx.paths.brewfile.write_text('brew "git"\n')
        install_bundle(ctx)
        assert ctx.paths.brewfile.read_text() == 'brew "git"\n'

    def test_render_brewfile(self):
        text = render_brewfile(Settings(brew_formulae=["git", "jq"], brew_casks=["iterm2"]))
        assert 'brew "git"\nbrew "jq"\n' in text
        assert text.endswith('cask "iterm2"\n')


class TestShellProfile:
    def test_appends_export_once(self, registry, settings, home, tmp_path):
        ctx = make_context(registry, settings, home)
        bindir = tmp_path / "opt" / "bin"
        bindir.mkdir(parents=True)
        rc = home / ".zprofile"
        rc.write_text("# mine\n")

        assert add_to_path_file(ctx, bindir, rc)
        assert not add_to_path_file(ctx, bindir, rc)
        assert rc.read_text() == f"# mine\n{export_line(bindir)}\n"
        assert (ctx.backups.snapshot_dir / ".zprofile").read_text() == "# mine\n"

    def test_missing_directory_skipped(self, registry, settings, home, tmp_path, caplog):
        ctx = make_context(registry, settings, home)
        with caplog.at_level(logging.WARNING):
            assert not add_to_path_file(ctx, tmp_path / "nope", home / ".zprofile")
        assert "directory does not exist" in caplog.text
        assert not (home / ".zprofile").exists()


# ── git_and_ssh ─────────────────────────────────────────────────────


class TestGitIdentity:
    def test_existing_identity_not_prompted(self, registry, settings, home, shell):
        respond(shell, ["git", "config", "--global", "user.name"], "Ada Lovelace")
        respond(shell, ["git", "config", "--global", "user.email"], "ada@example.com")
        prompter = ScriptedPrompter()

        email = configure_git(make_context(registry, settings, home, prompter=prompter))

        assert email == "ada@example.com"
        assert prompter.asked == []
        commands = shell_commands(shell)
        assert ["git", "config", "--global", "init.defaultBranch", "main"] in commands
        assert ["git", "config", "--global", "pull.rebase", "false"] in commands

    def test_invalid_answers_are_reprompted(self, registry, settings, home, shell):
        prompter = ScriptedPrompter(answers=["<script>", "Ada Lovelace", "not-an-email", "ada@example.com"])
        email = configure_git(make_context(registry, settings, home, prompter=prompter))

        assert email == "ada@example.com"
        assert len(prompter.asked) == 4
        commands = shell_commands(shell)
        assert ["git", "config", "--global", "user.name", "Ada Lovelace"] in commands
        assert ["git", "config", "--global", "user.email", "ada@example.com"] in commands

    def test_gives_up_after_repeated_invalid_answers(self, registry, settings, home):
        prompter = ScriptedPrompter(answers=["$(rm -rf ~)"] * 10)
        with pytest.raises(PhaseError):
            configure_git(make_context(registry, settings, home, prompter=prompter))


class TestSshKey:
    def test_generates_key_and_keychain_config(self, registry, settings, home, shell):
        ctx = make_context(registry, settings, home)
        assert ensure_ssh_key(ctx, "ada@example.com")

        key = home / ".ssh" / "id_ed25519"
        commands = shell_commands(shell)
        assert ["ssh-keygen", "-t", "ed25519", "-C", "ada@example.com", "-f", str(key), "-N", ""] in commands
        assert ["ssh-add", "--apple-use-keychain", str(key)] in commands

        assert (home / ".ssh").stat().st_mode & 0o777 == 0o700
        config = home / ".ssh" / "config"
        assert "UseKeychain yes" in config.read_text()
        assert "IdentityFile ~/.ssh/id_ed25519" in config.read_text()
        assert config.stat().st_mode & 0o777 == 0o600

    def test_existing_key_untouched(self, registry, settings, home, shell):
        (home / ".ssh").mkdir()
        (home / ".ssh" / "id_ed25519").write_text("PRIVATE")
        assert not ensure_ssh_key(make_context(registry, settings, home), "ada@example.com")
        assert shell.call_count == 0

    def test_existing_ssh_config_backed_up(self, registry, settings, home):
        (home / ".ssh").mkdir()
        (home / ".ssh" / "config").write_text("Host work\n")
        ctx = make_context(registry, settings, home)
        ensure_ssh_key(ctx, "ada@example.com")

        assert (ctx.backups.snapshot_dir / ".ssh" / "config").read_text() == "Host work\n"
        assert (home / ".ssh" / "config").read_text().startswith("Host work\n")

    def test_agent_failure_is_only_a_warning(self, registry, settings, home, shell, caplog):
        key = home / ".ssh" / "id_ed25519"
        respond(shell, ["ssh-add", "--apple-use-keychain", str(key)], fail=True)
        with caplog.at_level(logging.WARNING):
            assert ensure_ssh_key(make_context(registry, settings, home), "ada@example.com")
        assert "Could not add" in caplog.text


class TestGithubUpload:
    def _pubkey(self, home: Path) -> None:
        (home / ".ssh").mkdir()
        (home / ".ssh" / "id_ed25519.pub").write_text("ssh-ed25519 AAAA ada@example.com\n")

    def test_uploads_with_token_header(self, registry, settings, home, http, caplog):
        self._pubkey(home)
        http.set_response(
            "http:POST:https://api.github.com/user/keys",
            Receipt.success(adapter="http", action_id="x", return_code=201),
        )
        prompter = ScriptedPrompter(answers=[TOKEN, "work laptop"])

        with caplog.at_level(logging.DEBUG):
            assert upload_key_to_github(make_context(registry, settings, home, prompter=prompter))

        action = http.actions[0]
        assert action.params["headers"] == {"Authorization": f"token {TOKEN}"}
        assert action.params["payload"] == {"title": "work laptop", "key": "ssh-ed25519 AAAA ada@example.com"}
        assert TOKEN not in action.description
        assert TOKEN not in caplog.text

    def test_rejected_upload_is_not_fatal(self, registry, settings, home, http, caplog):
        self._pubkey(home)
        http.set_response(
            "http:POST:https://api.github.com/user/keys",
            Receipt.failure(adapter="http", action_id="x", error="HTTP 422", return_code=422),
        )
        prompter = ScriptedPrompter(answers=[TOKEN, ""])
        with caplog.at_level(logging.WARNING):
            assert not upload_key_to_github(make_context(registry, settings, home, prompter=prompter))
        assert "HTTP 422" in caplog.text

    def test_empty_token_skips(self, registry, settings, home, http):
        prompter = ScriptedPrompter(answers=[""])
        assert not upload_key_to_github(make_context(registry, settings, home, prompter=prompter))
        assert http.call_count == 0

    def test_malformed_token_never_sent(self, registry, settings, home, http):
        prompter = ScriptedPrompter(answers=["short"] * 5)
        assert not upload_key_to_github(make_context(registry, settings, home, prompter=prompter))
        assert http.call_count == 0

    def test_declined_upload_asks_no_token(self, registry, settings, home, http):
        prompter = ScriptedPrompter(answers=["Ada Lovelace", "ada@example.com"], confirms=[False])
        configure_identity(make_context(registry, settings, home, prompter=prompter))
        assert http.call_count == 0
        assert prompter.asked[-1] == "Upload this key to GitHub automatically?"


# ── shell_configuration ─────────────────────────────────────────────


class TestShellConfiguration:
    def test_installs_oh_my_zsh_and_writes_zshrc(self, registry, settings, home, shell):
        (home / ".zshrc").write_text("# old\n")
        ctx = make_context(registry, settings, home)
        configure_shell(ctx)

        script = str(ctx.paths.temp_file("ohmyzsh_install.sh"))
        commands = shell_commands(shell)
        assert ["sh", script] in commands
        run = next(a for a in shell.actions if a.params["argv"] == ["sh", script])
        assert run.params["env"] == {"RUNZSH": "no", "CHSH": "no"}
        for plugin in settings.zsh_plugins:
            dest = home / ".oh-my-zsh" / "custom" / "plugins" / plugin.name
            assert ["git", "clone", plugin.repo, str(dest)] in commands

        assert (home / ".zshrc").read_text() == render_zshrc(settings)
        assert (ctx.backups.snapshot_dir / ".zshrc").read_text() == "# old\n"

    def test_existing_install_not_repeated(self, registry, settings, home, shell):
        plugins = home / ".oh-my-zsh" / "custom" / "plugins"
        for plugin in settings.zsh_plugins:
            (plugins / plugin.name).mkdir(parents=True)
        configure_shell(make_context(registry, settings, home))
        assert shell.call_count == 0

    def test_syntax_highlighting_loads_last(self, settings):
        text = render_zshrc(settings)
        assert text.index("zsh-syntax-highlighting") > text.index("history-substring-search")
        assert 'export ZSH="$HOME/.oh-my-zsh"' in text


# ── dotfiles ────────────────────────────────────────────────────────


class TestDotfiles:
    def _repo(self, home: Path) -> Path:
        repo = home / "dotfiles"
        (repo / ".git").mkdir(parents=True)
        (repo / ".zshrc").write_text("# from repo\n")
        return repo

    def test_skipped_without_repository(self, registry, home, shell, tmp_path):
        settings = Settings(dotfiles_repo="skip", temp_glob=str(tmp_path / "setup_temp_*"))
        link_dotfiles(make_context(registry, settings, home))
        assert shell.call_count == 0

    def test_links_and_backs_up(self, registry, settings, home, shell):
        repo = self._repo(home)
        (home / ".zshrc").write_text("# mine\n")
        ctx = make_context(registry, settings, home)

        link_dotfiles(ctx)

        assert ["git", "-C", str(repo), "pull", "--ff-only"] in shell_commands(shell)
        assert (home / ".zshrc").is_symlink()
        assert (home / ".zshrc").read_text() == "# from repo\n"
        assert (ctx.backups.snapshot_dir / ".zshrc").read_text() == "# mine\n"
        # .gitconfig is not in the repo
        assert not (home / ".gitconfig").exists()

    def test_already_linked_is_left_alone(self, registry, settings, home):
        repo = self._repo(home)
        (home / ".zshrc").symlink_to(repo / ".zshrc")
        ctx = make_context(registry, settings, home)
        link_dotfiles(ctx)
        assert ctx.backups.snapshot_dir is None

    def test_clone_failure_is_not_fatal(self, registry, settings, home, shell):
        respond(shell, ["git", "clone", settings.dotfiles_repo, str(home / "dotfiles")], fail=True)
        link_dotfiles(make_context(registry, settings, home))
        assert not (home / ".zshrc").exists()


# ── development_tools ───────────────────────────────────────────────


class TestToolchains:
    def test_requires_homebrew(self, registry, settings, home, no_tools):
        with pytest.raises(PhaseError, match="Homebrew"):
            install_toolchains(make_context(registry, settings, home))

    def test_latest_patch(self):
        listing = "  3.11.9\n  3.12.2\n  3.12.10\n  3.12.8\n  3.12-dev\n  3.13.0\n"
        assert latest_patch(listing, "3.12.7") == "3.12.10"
        assert latest_patch(listing, "3.9.1") is None

    def test_node_installed_through_nvm(self, registry, settings, home, shell, tmp_path, monkeypatch):
        monkeypatch.setattr(ExecutionGateway, "which", lambda self, name: None if name == "node" else name)
        prefix = tmp_path / "nvm-prefix"
        prefix.mkdir()
        (prefix / "nvm.sh").write_text("")
        respond(shell, ["brew", "--prefix", "nvm"], str(prefix))

        install_node(make_context(registry, settings, home))

        nvm_runs = [argv for argv in shell_commands(shell) if argv[:2] == ["/bin/bash", "-c"]]
        assert nvm_runs[0][3:] == ["nvm", str(home / ".nvm"), str(prefix / "nvm.sh")]
        assert nvm_runs[1][-len(settings.npm_global_packages):] == settings.npm_global_packages
        assert (home / ".nvm").is_dir()

    def test_node_skipped_without_nvm(self, registry, settings, home, shell):
        respond(shell, ["brew", "list", "nvm"], fail=True)
        install_node(make_context(registry, settings, home))
        assert shell_commands(shell) == [["brew", "list", "nvm"]]

    def test_python_already_installed(self, registry, settings, home, shell, all_tools):
        respond(shell, ["pyenv", "versions", "--bare"], "3.11.9\n3.12.7\n")
        install_python(make_context(registry, settings, home))
        commands = shell_commands(shell)
        assert ["pyenv", "install", "3.12.7"] not in commands
        assert ["pyenv", "global", "3.12.7"] in commands
        assert ["pyenv", "exec", "pip", "install", *settings.pip_packages] in commands

    def test_python_falls_back_to_latest_patch(self, registry, settings, home, shell, all_tools):
        respond(shell, ["pyenv", "install", "3.12.7"], fail=True)
        respond(shell, ["pyenv", "install", "--list"], "  3.12.7\n  3.12.9\n  3.13.1\n")

        install_python(make_context(registry, settings, home))

        commands = shell_commands(shell)
        assert ["pyenv", "install", "--skip-existing", "3.12.9"] in commands
        assert ["pyenv", "global", "3.12.9"] in commands

    def test_python_without_fallback_fails_phase(self, registry, settings, home, shell, all_tools):
        respond(shell, ["pyenv", "install", "3.12.7"], fail=True)
        with pytest.raises(PhaseError):
            install_python(make_context(registry, settings, home))


# ── applications ────────────────────────────────────────────────────


class TestApplications:
    def test_installs_each_missing_app(self, registry, settings, home, shell, dmg):
        installed = Path(settings.applications_dir) / "PyCharm.app"
        installed.mkdir()
        install_applications(make_context(registry, settings, home))

        bundles = [a.params["bundle"] for a in dmg.actions]
        assert bundles == ["ChatGPT", "Google Chrome"]
        assert dmg.actions[0].params["image"] == str(home / "Downloads" / "ChatGPT.dmg")
        assert (home / "Downloads").is_dir()

    def test_failed_download_tries_the_rest_then_fails(self, registry, home, shell, dmg, tmp_path):
        apps = [
            Application(name="Broken", bundle="Broken", url="https://example.com/b.dmg", image="b.dmg"),
            Application(name="Fine", bundle="Fine", url="https://example.com/f.dmg", image="f.dmg"),
        ]
        settings = Settings(applications=apps, applications_dir=str(tmp_path), temp_glob=str(tmp_path / "t_*"))
        respond(
            shell,
            ["curl", "-L", "--fail", "--progress-bar", "-o", str(home / "Downloads" / "b.dmg"), apps[0].url],
            fail=True,
        )

        with pytest.raises(PhaseError, match="Could not install: Broken"):
            install_applications(make_context(registry, settings, home))
        assert [a.params["bundle"] for a in dmg.actions] == ["Fine"]

    def test_failed_install_fails_the_phase(self, registry, settings, home, dmg):
        dmg.set_failure("dmg:ChatGPT")
        with pytest.raises(PhaseError) as exc_info:
            install_applications(make_context(registry, settings, home))
        assert dmg.call_count == 3
        assert str(exc_info.value) == "Could not install: ChatGPT"


# ── system_configuration ────────────────────────────────────────────


class TestSystemConfiguration:
    def test_sets_browser(self, registry, settings, home, shell, all_tools):
        configure_system(make_context(registry, settings, home))
        assert shell_commands(shell) == [["defaultbrowser", "chrome"]]

    def test_installs_helper_first(self, registry, settings, home, shell, no_tools):
        configure_system(make_context(registry, settings, home))
        assert shell_commands(shell) == [
            ["brew", "install", "defaultbrowser"],
            ["defaultbrowser", "chrome"],
        ]
