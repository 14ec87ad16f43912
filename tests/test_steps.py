"""Tests for the individual provisioning steps against a fake Mac."""

import pytest

from macsetup.state import StateStore
from macsetup.steps import (
    ApplyMacosDefaults,
    BrewPackages,
    CloneRepository,
    ConfigureGatekeeper,
    EnableZshPlugins,
    GenerateSshKey,
    InstallDotfiles,
    InstallHomebrew,
    InstallOhMyZsh,
    SetComputerName,
    SetTimezone,
    ShellStep,
    local_host_name,
)

from conftest import BREW, DEFAULTS_URL, OHMYZSH_TEMPLATE_RC


@pytest.mark.parametrize(
    "name,expected",
    [
        ("devbox", "devbox"),
        ("Jane's MacBook Pro", "Jane-s-MacBook-Pro"),
        ("  spaced  out  ", "spaced-out"),
        ("***", "Mac"),
    ],
)
def test_local_host_name(name, expected):
    assert local_host_name(name) == expected


class TestHomebrew:
    def test_runs_installer_non_interactively(self, mac):
        step = InstallHomebrew()
        assert not step.is_satisfied(mac)
        step.apply(mac)
        assert mac.brew_installed
        assert step.is_satisfied(mac)
        assert mac.fetched == [step.install_url]

    def test_packages_install_only_missing(self, mac):
        mac.brew_installed = True
        mac.formulae = {"git"}
        step = BrewPackages("formulae", ("git", "jq", "homebrew/core/wget"))
        assert step.missing(mac) == ["jq", "homebrew/core/wget"]
        step.apply(mac)
        assert [BREW, "install", "jq", "homebrew/core/wget"] in mac.mutations

    def test_casks_use_cask_flag(self, mac):
        mac.brew_installed = True
        step = BrewPackages("fonts", ("font-fira-code",), cask=True)
        step.apply(mac)
        assert [BREW, "install", "--cask", "font-fira-code"] in mac.mutations
        assert step.is_satisfied(mac)

    def test_empty_package_list_is_satisfied(self, mac):
        assert BrewPackages("nothing", ()).is_satisfied(mac)

    def test_apply_without_brew_is_an_os_error(self, mac):
        with pytest.raises(FileNotFoundError):
            BrewPackages("formulae", ("git",)).apply(mac)


class TestPreferences:
    def test_timezone(self, mac):
        step = SetTimezone("Europe/Paris")
        assert step.current(mac) == "America/New_York"
        assert not step.is_satisfied(mac)
        step.apply(mac)
        assert ["sudo", "systemsetup", "-settimezone", "Europe/Paris"] in mac.mutations
        assert step.is_satisfied(mac)
        assert step.privileged

    def test_computer_name_sets_all_three_names(self, mac):
        step = SetComputerName("Jane's Mac")
        step.apply(mac)
        assert mac.names == {
            "ComputerName": "Jane's Mac",
            "HostName": "Jane-s-Mac",
            "LocalHostName": "Jane-s-Mac",
        }
        assert step.is_satisfied(mac)

    def test_gatekeeper_already_enabled_is_satisfied(self, mac):
        assert ConfigureGatekeeper(True).is_satisfied(mac)
        assert not ConfigureGatekeeper(False).is_satisfied(mac)

    def test_gatekeeper_disable(self, mac):
        step = ConfigureGatekeeper(False)
        assert step.description == "Disable Gatekeeper"
        step.apply(mac)
        assert ["sudo", "spctl", "--master-disable"] in mac.mutations
        assert step.is_satisfied(mac)

    def test_defaults_script_runs_once_per_url(self, mac):
        step = ApplyMacosDefaults(DEFAULTS_URL)
        assert not step.is_satisfied(mac)
        step.apply(mac)
        stamp = StateStore.for_home(mac.home).get("macos-defaults")
        assert set(stamp) == {"url", "recorded_at_unix"}
        assert stamp["url"] == DEFAULTS_URL
        assert step.is_satisfied(mac)
        assert not ApplyMacosDefaults("https://example.com/other.sh").is_satisfied(mac)

    def test_empty_defaults_url_is_a_no_op(self, mac):
        assert ApplyMacosDefaults("").is_satisfied(mac)


class TestShellAndFiles:
    def test_oh_my_zsh(self, mac):
        step = InstallOhMyZsh()
        assert not step.is_satisfied(mac)
        step.apply(mac)
        assert (mac.home / ".oh-my-zsh").is_dir()
        assert step.is_satisfied(mac)

    def test_clone_into_home_relative_dest(self, mac):
        step = CloneRepository("Install plugin", "https://x/p.git", ".oh-my-zsh/custom/plugins/p")
        step.apply(mac)
        dest = mac.home / ".oh-my-zsh/custom/plugins/p"
        assert ["git", "clone", "--depth", "1", "https://x/p.git", str(dest)] in mac.mutations
        assert step.is_satisfied(mac)

    def test_dotfiles_source_line_is_appended_once(self, mac):
        rc = mac.home / ".zshrc"
        rc.write_text("export EDITOR=vim")  # no trailing newline
        step = InstallDotfiles("https://x/dotfiles.git")
        step.apply(mac)
        step.apply(mac)

        lines = rc.read_text().splitlines()
        assert lines[0] == "export EDITOR=vim"
        assert lines.count(step.source_line(mac)) == 1
        assert step.is_satisfied(mac)
        clones = [c for c in mac.mutations if c[:2] == ["git", "clone"]]
        assert len(clones) == 1

    def test_ssh_key_generated_when_absent(self, mac):
        step = GenerateSshKey(comment="devbox", passphrase="pw")
        assert not step.is_satisfied(mac)
        step.apply(mac)
        key = mac.home / ".ssh/id_ed25519"
        assert key.exists()
        assert ["ssh-keygen", "-q", "-t", "ed25519", "-C", "devbox", "-N", "pw", "-f", str(key)] in mac.mutations
        assert step.is_satisfied(mac)

    def test_ssh_key_repr_hides_passphrase(self):
        assert "pw" not in repr(GenerateSshKey(comment="devbox", passphrase="pw"))

    def test_shell_step_check(self, mac):
        mac.fail_on("/bin/sh", "-c", "test -d /nope")
        assert ShellStep("a", "true", check="true").is_satisfied(mac)
        assert not ShellStep("b", "true", check="test -d /nope").is_satisfied(mac)
        assert not ShellStep("c", "true").is_satisfied(mac)


class TestZshPlugins:
    def test_names_added_to_existing_plugins_line(self, mac):
        rc = mac.home / ".zshrc"
        rc.write_text(OHMYZSH_TEMPLATE_RC)
        step = EnableZshPlugins(("zsh-autosuggestions", "git"))
        assert not step.is_satisfied(mac)

        step.apply(mac)
        assert step.enabled(mac) == ["git", "zsh-autosuggestions"]
        assert rc.read_text().splitlines()[2] == "plugins=(git zsh-autosuggestions)"
        assert step.is_satisfied(mac)

    def test_line_inserted_before_oh_my_zsh_is_sourced(self, mac):
        rc = mac.home / ".zshrc"
        rc.write_text('export ZSH="$HOME/.oh-my-zsh"\nsource $ZSH/oh-my-zsh.sh\n')
        EnableZshPlugins(("a", "b")).apply(mac)
        assert rc.read_text().splitlines() == [
            'export ZSH="$HOME/.oh-my-zsh"',
            "plugins=(a b)",
            "source $ZSH/oh-my-zsh.sh",
        ]

    def test_missing_rc_file_gets_plugins_line(self, mac):
        step = EnableZshPlugins(("a",))
        step.apply(mac)
        assert (mac.home / ".zshrc").read_text() == "plugins=(a)\n"
        assert step.is_satisfied(mac)

    def test_commented_out_line_is_ignored(self, mac):
        (mac.home / ".zshrc").write_text("# plugins=(a)\n")
        assert EnableZshPlugins(("a",)).enabled(mac) is None

    def test_no_names_is_satisfied(self, mac):
        assert EnableZshPlugins(()).is_satisfied(mac)
