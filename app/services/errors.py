class UnsupportedEntityType(ValueError):
    def __init__(self, entity_type: str):
        super().__init__(f"Unsupported entity type: {entity_type}")
        self.entity_type = entity_type


class EmptyImportError(ValueError):
    def __init__(self):
        super().__init__("CSV file is empty or has no data rows")


class UnknownFieldError(ValueError):
    def __init__(self, fields):
        super().__init__(f"Unknown fields in mapping: {sorted(fields)}")
        self.fields = list(fields)


class MissingRecipientError(ValueError):
    def __init__(self):
        super().__init__("Contact has no email address")
