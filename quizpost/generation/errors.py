class GenerationError(Exception):
    pass


class InvalidContentError(GenerationError):
    pass


class UnsupportedQuizTypeError(GenerationError):
    pass


class TemplateRenderError(GenerationError):
    pass


class ImageRenderError(GenerationError):
    pass
