css = '''
/* Styles that cannot be expressed with MonsterUI classes */

/* Drag and drop styling for the photo upload */
.dragover {
    border-color: hsl(var(--primary)) !important;
    background-color: hsl(var(--primary) / 0.1) !important;
}

/* HTMX indicators */
.htmx-indicator {
    display: none !important;
}

.htmx-request .htmx-indicator,
.htmx-request.htmx-indicator {
    display: flex !important;
}

/* Report footer only shows up on paper */
.print-only {
    display: none;
}

.print-color-adjust-exact {
    -webkit-print-color-adjust: exact;
    print-color-adjust: exact;
}

/* Mobile sidebar transitions */
#sidebar {
    transition: transform 0.3s ease-in-out;
}

@media (max-width: 768px) {
    #sidebar:not(.hidden) {
        transform: translateX(0);
    }

    #sidebar.hidden {
        transform: translateX(-100%);
    }
}

@media print {
    @page { margin: 0; size: A4; }
    body { background: white; -webkit-print-color-adjust: exact; }
    .no-print, #sidebar, #mobile-menu-toggle, #modal-container { display: none !important; }
    .print-only { display: block !important; }
    .page-break-inside-avoid { page-break-inside: avoid; }
    .no-break-inside { break-inside: avoid; }
    #report { box-shadow: none !important; border-radius: 0 !important; }
}
'''
