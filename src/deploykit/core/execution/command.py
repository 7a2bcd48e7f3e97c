"""
Command line construction for external tools.

Assembles the argument vector for an invocation from ExecutionSettings. The
order of tokens is part of the tool contract and must stay stable:

    <executable> <mode>
        [--filename <path>]
        [--profile <profile>]
        [--label <key>=<value>]...
        [--tail]
        [--default-repo <repo>]
        [--analyze]            (init only)
        [--force]              (init only)
        [<extra flags>...]     (kubectl only, right after the mode)

Validation runs first and raises InvalidConfigurationError before a single
token is produced.
"""

import logging

from .exceptions import InvalidConfigurationError
from .models import (
    BuiltCommand,
    ExecutionSettings,
    KubectlMode,
    SkaffoldMode,
)

logger = logging.getLogger(__name__)


END_OF_OPTIONS = "--"


def flag_token(argument: str) -> str | None:
    """
    Return the flag token of a command line argument.

    ``--output=json`` yields ``--output`` and ``-ojson`` yields ``-o``;
    positional values (anything not starting with ``-``) and the bare
    ``--`` separator yield None.
    """
    if not argument.startswith("-") or argument in ("-", END_OF_OPTIONS):
        return None
    if argument.startswith("--"):
        return argument.split("=", 1)[0]
    return argument[:2]


class CommandBuilder:
    """
    Builds deterministic argument vectors from execution settings.

    The builder is stateless; one instance can be shared by any number of
    executors.

    Example:
        >>> builder = CommandBuilder()
        >>> settings = ExecutionSettings(
        ...     SkaffoldMode.SINGLE_RUN, config_file_path="test.yaml"
        ... )
        >>> builder.build(settings, "skaffold").command_line
        'skaffold run --filename test.yaml'
    """

    def validate(self, settings: ExecutionSettings) -> None:
        """
        Check settings for consistency with their mode.

        Raises:
            InvalidConfigurationError: If init flags are both set, if a
                kubectl flag is not allowed under the mode, or if options of
                one tool are used with the other
        """
        tool = settings.tool.name

        if settings.analyze_on_init and settings.force_init:
            raise InvalidConfigurationError(
                tool,
                "--analyze and --force cannot be used together",
                mode=settings.mode.value,
            )

        if isinstance(settings.mode, KubectlMode):
            if settings.uses_skaffold_options():
                raise InvalidConfigurationError(
                    tool,
                    "Skaffold options are not supported by kubectl",
                    mode=settings.mode.value,
                )
            self._validate_kubectl_flags(settings.mode, settings.extra_flags)
        elif settings.extra_flags:
            raise InvalidConfigurationError(
                tool,
                "Extra flags are only supported by kubectl",
                mode=settings.mode.value,
            )

    def _validate_kubectl_flags(self, mode: KubectlMode, flags: tuple[str, ...]) -> None:
        allowed = mode.allowed_flags
        # Arguments after "--" belong to the container command
        if END_OF_OPTIONS in flags:
            flags = flags[: flags.index(END_OF_OPTIONS)]
        rejected = [
            token for token in (flag_token(arg) for arg in flags)
            if token is not None and token not in allowed
        ]
        if rejected:
            raise InvalidConfigurationError(
                "kubectl",
                f"Flags not allowed for 'kubectl {mode.value}': {', '.join(rejected)}",
                mode=mode.value,
                rejected=rejected,
            )

    def build(self, settings: ExecutionSettings, resolved_executable: str) -> BuiltCommand:
        """
        Assemble the argument vector.

        Args:
            settings: Execution settings (read-only)
            resolved_executable: argv[0] as returned by the resolver

        Returns:
            BuiltCommand holding argv and its display command line

        Raises:
            InvalidConfigurationError: If validation fails
        """
        self.validate(settings)

        argv = [resolved_executable, settings.mode.value]

        if settings.extra_flags:
            argv.extend(settings.extra_flags)

        if settings.config_file_path is not None:
            argv.extend(["--filename", settings.config_file_path])

        if settings.profile is not None:
            argv.extend(["--profile", settings.profile])

        for key, value in settings.labels:
            argv.extend(["--label", f"{key}={value}"])

        if settings.tail_logs_after_deploy is True:
            argv.append("--tail")

        if settings.default_image_repo is not None:
            argv.extend(["--default-repo", settings.default_image_repo])

        if settings.mode is SkaffoldMode.INIT:
            if settings.analyze_on_init:
                argv.append("--analyze")
            if settings.force_init:
                argv.append("--force")

        command = BuiltCommand(argv=tuple(argv))
        logger.debug(f"Built command: {command.command_line}")
        return command
