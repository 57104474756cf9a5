class RotuloReferenciaInvalido(ValueError):
    """Raised when a reference label is not in the 'mmm/aa' form."""

    def __init__(self, rotulo, motivo: str = ""):
        self.rotulo = rotulo
        self.motivo = motivo
        mensagem = f"Rótulo de referência inválido: '{rotulo}'"
        if motivo:
            mensagem += f" ({motivo})"
        super().__init__(mensagem)
