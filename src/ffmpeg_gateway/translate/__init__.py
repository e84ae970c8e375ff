from ffmpeg_gateway.translate.cli_translator import CliCommandTranslator, Translation

__all__ = ["CliCommandTranslator", "Translation"]
