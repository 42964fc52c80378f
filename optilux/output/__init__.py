from .css import (
    backdrop_filter,
    bragg_mirror_css,
    fog_css,
    iridescent_gradient,
    luminous_border_shadow,
    metallic_gradient,
    metallic_surface,
    oil_slick_css,
    rgb,
    rgba,
    smoke_css,
    soap_bubble_css,
    structural_color_css,
)
