"""gvcfsite: streaming per-site gVCF annotation core.

Most users should use the CLI:

    gvcfsite annotate --bam ... --ref ... --contig ... --outdir ...

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
