"""SISGPO: escalas operacionais e espelho de ocorrências."""
