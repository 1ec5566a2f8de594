import os

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from parameters import *


###################################################### PT ###########################################################

def plot_pt_spectrum(hist, out_dir):
    """
    dN/dpT per unit bin width on a log scale. The variable-width pT axis
    would otherwise show steps wherever the bin width changes.
    """
    edges  = hist.edges
    widths = hist.axis.widths
    cents  = hist.axis.centers
    dN     = hist.counts / widths
    err    = np.sqrt(hist.counts) / widths
    ok     = hist.counts > 0

    fig, ax = plt.subplots(figsize=(7, 5))
    ax.errorbar(cents[ok], dN[ok], xerr=0.5 * widths[ok], yerr=err[ok],
                fmt='o', ms=3, color='steelblue', label=f'{hist.entries} entries')

    if ok.any():
        ax.set_yscale('log')
    ax.set_xlim(edges[0], edges[-1])
    ax.set_xlabel(PT_TITLE)
    ax.set_ylabel(r'$dN/dp_{T}$ (GeV/$c$)$^{-1}$')
    ax.set_title('Transverse momentum spectrum')
    ax.legend(fontsize=8)
    plt.tight_layout()

    path = os.path.join(out_dir, f'{hist.name}.pdf')
    plt.savefig(path)
    plt.close(fig)
    print(f"Saved {path}")
    return path

###################################################### VTXZ ###########################################################

def plot_vtxz(hist, out_dir):
    fig, ax = plt.subplots(figsize=(7, 5))
    ax.stairs(hist.counts, hist.edges, color='steelblue', fill=True, alpha=0.7)

    ax.set_xlabel(VTXZ_TITLE)
    ax.set_ylabel('Counts')
    ax.set_title(f'Vertex z distribution  (underflow {hist.underflow}, '
                 f'overflow {hist.overflow})')
    plt.tight_layout()

    path = os.path.join(out_dir, f'{hist.name}.pdf')
    plt.savefig(path)
    plt.close(fig)
    print(f"Saved {path}")
    return path


def plot_all(registry, out_dir):
    os.makedirs(out_dir, exist_ok=True)
    paths = []
    if H_PT in registry:
        paths.append(plot_pt_spectrum(registry[H_PT], out_dir))
    if H_VTXZ in registry:
        paths.append(plot_vtxz(registry[H_VTXZ], out_dir))
    return paths
