class CatalogError(Exception):
    pass


class TemplateNotFoundError(CatalogError):
    pass


class QuizNotFoundError(CatalogError):
    pass


class InvalidTemplateError(CatalogError):
    pass
