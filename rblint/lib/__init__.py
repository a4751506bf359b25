# RbLint shared libraries
