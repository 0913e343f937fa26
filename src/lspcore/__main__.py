from .cli import lspcore

lspcore(prog_name="lspcore")
